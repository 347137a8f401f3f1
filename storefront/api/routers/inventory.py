# storefront/api/routers/inventory.py
from typing import List

from fastapi import APIRouter, Depends

from storefront.api.dependencies import get_ledger, to_http
from storefront.domain.errors import StorefrontError
from storefront.domain.schemas import StockIn, StockRow
from storefront.services.stock_ledger import StockLedger

router = APIRouter(prefix="/inventory", tags=["inventory"])


@router.get("/{product_id}", response_model=List[StockRow])
async def list_rows(product_id: str, ledger: StockLedger = Depends(get_ledger)):
    try:
        return await ledger.read_rows_for_product(product_id)
    except StorefrontError as e:
        raise to_http(e)


@router.put("/{product_id}/{size}", response_model=StockRow)
async def upsert_row(
    product_id: str,
    size: str,
    payload: StockIn,
    ledger: StockLedger = Depends(get_ledger),
):
    """Admin: ustawia absolutny stan (bez transakcji, operacja operatora)."""
    try:
        return await ledger.upsert(product_id, size, payload.stock)
    except StorefrontError as e:
        raise to_http(e)


@router.delete("/{product_id}/{size}")
async def delete_row(product_id: str, size: str, ledger: StockLedger = Depends(get_ledger)):
    try:
        removed = await ledger.remove(product_id, size)
    except StorefrontError as e:
        raise to_http(e)
    return {"removed": removed}
