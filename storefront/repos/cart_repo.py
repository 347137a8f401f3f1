# storefront/repos/cart_repo.py
from storefront.data.store import DocumentStore
from storefront.domain.adapters import normalize_cart_document
from storefront.domain.schemas import Cart

CARTS = "carts"


class CartRepo:
    """Zdalny (autorytatywny) dokument koszyka, jeden na usera, klucz = userId."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def get_cart(self, user_id: str) -> Cart | None:
        doc = await self.store.get(CARTS, user_id)
        if doc is None:
            return None
        return normalize_cart_document(user_id, doc)

    async def save_cart(self, cart: Cart) -> None:
        await self.store.set(CARTS, cart.user_id, cart.to_document())
