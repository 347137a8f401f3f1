# storefront/api/dependencies.py
from typing import AsyncIterator

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.domain.errors import (
    InsufficientStockError,
    NotFoundError,
    PersistenceUnavailableError,
    ReconciliationRequiredError,
    StorefrontError,
    TransactionConflictError,
    ValidationError,
)
from storefront.domain.schemas import CartOut
from storefront.services.availability_cache import AvailabilityCache
from storefront.services.cart_store import CartSessions, CartStore
from storefront.services.order_service import OrderService
from storefront.services.stock_ledger import StockLedger


def get_ledger(request: Request) -> StockLedger:
    return request.app.state.ledger


def get_availability(request: Request) -> AvailabilityCache:
    return request.app.state.availability


def get_cart_sessions(request: Request) -> CartSessions:
    return request.app.state.carts


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    async with request.app.state.session_factory() as session:
        yield session


def get_order_service(request: Request, db: AsyncSession = Depends(get_db)) -> OrderService:
    return OrderService(
        db=db,
        counters=request.app.state.counters,
        notification_service=request.app.state.notifications,
    )


def cart_out(store: CartStore) -> CartOut:
    cart = store.cart
    return CartOut(
        id=cart.id,
        user_id=cart.user_id,
        items=cart.items,
        total=cart.total,
        item_count=cart.item_count,
        degraded=store.degraded,
    )


def to_http(e: StorefrontError) -> HTTPException:
    """Mapowanie typowanych bledow na HTTP; szczegoly linii dla UI."""
    if isinstance(e, ValidationError):
        return HTTPException(status_code=400, detail={"message": str(e)})

    if isinstance(e, InsufficientStockError):
        return HTTPException(
            status_code=409,
            detail={
                "message": e.user_message,
                "product_id": e.product_id,
                "size": e.size,
                "requested": e.requested,
                "available": e.available,
                "transient": False,
            },
        )

    if isinstance(e, NotFoundError):
        return HTTPException(
            status_code=409,
            detail={"message": e.user_message, "product_id": e.product_id, "size": e.size, "transient": False},
        )

    if isinstance(e, (TransactionConflictError, PersistenceUnavailableError)):
        return HTTPException(status_code=503, detail={"message": e.user_message, "transient": True})

    if isinstance(e, ReconciliationRequiredError):
        #nie proponujemy retry - ryzyko podwojnego zamowienia
        return HTTPException(
            status_code=500,
            detail={"message": "Your order could not be recorded. Our team has been notified.", "transient": False},
        )

    return HTTPException(status_code=500, detail={"message": str(e)})
