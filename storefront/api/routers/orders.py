# storefront/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from storefront.api.dependencies import (
    get_cart_sessions,
    get_ledger,
    get_order_service,
    to_http,
)
from storefront.domain.errors import StorefrontError
from storefront.domain.schemas import OrderOut, PlaceOrderIn
from storefront.services.cart_store import CartSessions
from storefront.services.checkout import CheckoutCoordinator
from storefront.services.order_service import OrderService
from storefront.services.stock_ledger import StockLedger

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("/", response_model=OrderOut, status_code=201)
async def place_order(
    payload: PlaceOrderIn,
    sessions: CartSessions = Depends(get_cart_sessions),
    ledger: StockLedger = Depends(get_ledger),
    orders: OrderService = Depends(get_order_service),
):
    """
    Składa zamówienie z koszyka usera.
    Stan magazynu zdejmowany atomowo, koszyk czyszczony po sukcesie.
    """
    try:
        store = await sessions.get(payload.user_id)
        coordinator = CheckoutCoordinator(
            ledger=ledger,
            cart_store=store,
            orders=orders,
            notification_service=orders.notification_service,
        )
        order = await coordinator.place_order(payload.shipping_address, payload.payment_method)
    except StorefrontError as e:
        raise to_http(e)

    #po zamowieniu sesja koszyka startuje od nowa (reconcile przy nastepnym wejsciu)
    sessions.end(payload.user_id)
    return order


@router.get("/", response_model=List[OrderOut])
async def list_orders(user_id: str = Query(...), orders: OrderService = Depends(get_order_service)):
    return await orders.list_orders(user_id)


@router.get("/{order_id}", response_model=OrderOut)
async def get_order(
    order_id: int,
    user_id: str = Query(...),
    orders: OrderService = Depends(get_order_service),
):
    """
    Pobiera szczegóły zamówienia.
    """
    try:
        return await orders.get_order(order_id, user_id)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
