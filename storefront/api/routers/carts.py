# storefront/api/routers/carts.py
from fastapi import APIRouter, Depends

from storefront.api.dependencies import cart_out, get_cart_sessions, to_http
from storefront.domain.errors import StorefrontError
from storefront.domain.schemas import AddItemIn, CartOut, UpdateQuantityIn
from storefront.services.cart_store import CartSessions

router = APIRouter(prefix="/carts", tags=["carts"])


@router.get("/{user_id}", response_model=CartOut)
async def get_cart(user_id: str, sessions: CartSessions = Depends(get_cart_sessions)):
    """Start sesji (reconcile przy pierwszym wywolaniu) i odczyt koszyka."""
    try:
        store = await sessions.get(user_id)
    except StorefrontError as e:
        raise to_http(e)
    return cart_out(store)


@router.post("/{user_id}/items", response_model=CartOut)
async def add_item(
    user_id: str,
    payload: AddItemIn,
    sessions: CartSessions = Depends(get_cart_sessions),
):
    try:
        store = await sessions.get(user_id)
        await store.add(payload.product, payload.size, payload.color, payload.quantity)
    except StorefrontError as e:
        raise to_http(e)
    return cart_out(store)


@router.patch("/{user_id}/items/{item_id}", response_model=CartOut)
async def update_quantity(
    user_id: str,
    item_id: str,
    payload: UpdateQuantityIn,
    sessions: CartSessions = Depends(get_cart_sessions),
):
    try:
        store = await sessions.get(user_id)
        await store.update_quantity(item_id, payload.quantity)
    except StorefrontError as e:
        raise to_http(e)
    return cart_out(store)


@router.delete("/{user_id}/items/{item_id}", response_model=CartOut)
async def remove_item(
    user_id: str,
    item_id: str,
    sessions: CartSessions = Depends(get_cart_sessions),
):
    try:
        store = await sessions.get(user_id)
        await store.remove(item_id)
    except StorefrontError as e:
        raise to_http(e)
    return cart_out(store)


@router.delete("/{user_id}", response_model=CartOut)
async def clear_cart(user_id: str, sessions: CartSessions = Depends(get_cart_sessions)):
    try:
        store = await sessions.get(user_id)
        await store.clear()
    except StorefrontError as e:
        raise to_http(e)
    return cart_out(store)
