# storefront/api/routers/availability.py
from typing import List

from fastapi import APIRouter, Depends, Query

from storefront.api.dependencies import get_availability, to_http
from storefront.domain.errors import StorefrontError
from storefront.domain.schemas import AvailabilityOut
from storefront.services.availability_cache import AvailabilityCache

router = APIRouter(prefix="/availability", tags=["availability"])


@router.get("/{product_id}", response_model=AvailabilityOut)
async def get_availability_for_product(
    product_id: str,
    sizes: List[str] = Query(default=[]),
    cache: AvailabilityCache = Depends(get_availability),
):
    """
    Stan per rozmiar do decyzji UI (moze byc nieaktualny).
    """
    try:
        return await cache.availability(product_id, sizes)
    except StorefrontError as e:
        raise to_http(e)
