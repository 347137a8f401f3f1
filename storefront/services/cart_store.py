# storefront/services/cart_store.py
import asyncio
import time
from collections import OrderedDict
from contextlib import asynccontextmanager
from typing import AsyncIterator

from storefront.domain.errors import PersistenceUnavailableError, ValidationError
from storefront.domain.schemas import Cart, CartItem, ProductSnapshot, utcnow
from storefront.repos.cart_mirror import CartMirror
from storefront.repos.cart_repo import CartRepo
from storefront.services.cart_reconciler import CartReconciler
from storefront.utils.settings import CART_SESSION_LIMIT
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def _tick() -> int:
    return time.time_ns() // 1_000_000


def _check_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("Quantity must be an integer")
    return quantity


class CartStore:
    """
    Koszyk jednej sesji usera.

    commands (add, remove, update_quantity, clear) przeliczaja total i ida
    przez save(): zapis zdalny + zawsze zapis do lokalnego mirrora.
    Mutacje sa serializowane lockiem, zeby przeliczenie totala sie nie przeplatalo.
    """

    def __init__(self, repo: CartRepo, mirror: CartMirror, reconciler: CartReconciler | None = None):
        self.repo = repo
        self.mirror = mirror
        self.reconciler = reconciler or CartReconciler(repo, mirror)
        self.cart: Cart | None = None
        self.degraded = False
        self._lock = asyncio.Lock()

    #query
    async def load(self, user_id: str) -> Cart:
        async with self._lock:
            result = await self.reconciler.reconcile(user_id)
            self.cart = result.cart
            self.degraded = result.degraded
            if self.degraded:
                logger.warning(f"Cart session for user {user_id} running in degraded mode")
            return self.cart

    #commands
    async def save(self, cart: Cart) -> Cart:
        async with self._lock:
            return await self._save(cart)

    async def add(
        self,
        product: ProductSnapshot,
        size: str,
        color: str = "",
        quantity: int = 1,
    ) -> Cart:
        quantity = _check_quantity(quantity)
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")
        if not str(size or "").strip():
            raise ValidationError("Please select a size")

        async with self._lock:
            cart = self._require_cart()
            items = list(cart.items)
            variant = (product.id, size, color)

            idx = next((i for i, it in enumerate(items) if it.variant == variant), None)
            if idx is not None:
                existing = items[idx]
                logger.info(
                    f"Item {existing.id} already in cart, quantity "
                    f"{existing.quantity} -> {existing.quantity + quantity}"
                )
                items[idx] = existing.model_copy(update={"quantity": existing.quantity + quantity})
            else:
                #cena ze snapshotu produktu w momencie dodania
                item = CartItem(
                    id=f"{product.id}-{size}-{color}-{_tick()}",
                    product_id=product.id,
                    product=product.model_copy(deep=True),
                    quantity=quantity,
                    size=size,
                    color=color,
                    price=product.price,
                )
                logger.info(f"Adding {item.id} to cart of user {cart.user_id}")
                items.append(item)

            return await self._save(cart.model_copy(update={"items": items}))

    async def remove(self, item_id: str) -> Cart:
        async with self._lock:
            return await self._remove(item_id)

    async def update_quantity(self, item_id: str, quantity: int) -> Cart:
        quantity = _check_quantity(quantity)

        async with self._lock:
            if quantity <= 0:
                return await self._remove(item_id)

            cart = self._require_cart()
            items = [
                it.model_copy(update={"quantity": quantity}) if it.id == item_id else it
                for it in cart.items
            ]
            return await self._save(cart.model_copy(update={"items": items}))

    async def clear(self) -> Cart:
        async with self._lock:
            return await self._clear()

    @asynccontextmanager
    async def checkout(self) -> AsyncIterator[Cart | None]:
        """
        Trzyma lock koszyka przez caly checkout (snapshot -> decrement -> zamowienie -> clear).
        Mutacje usera czekaja i wchodza dopiero po checkoucie; wewnatrz czyscimy przez _clear().
        """
        async with self._lock:
            yield self.cart

    async def _clear(self) -> Cart:
        cart = self._require_cart()
        logger.info(f"Clearing cart of user {cart.user_id}")
        return await self._save(cart.model_copy(update={"items": []}))

    async def _remove(self, item_id: str) -> Cart:
        cart = self._require_cart()
        items = [it for it in cart.items if it.id != item_id]
        return await self._save(cart.model_copy(update={"items": items}))

    def _require_cart(self) -> Cart:
        if self.cart is None:
            raise ValidationError("Cart is not loaded")
        return self.cart

    async def _save(self, cart: Cart) -> Cart:
        updated = cart.model_copy(update={"updated_at": utcnow()}).recalculate()
        #pamiec aktualizujemy zawsze, akcja usera nie moze zginac
        self.cart = updated

        try:
            await self.repo.save_cart(updated)
            if self.degraded:
                logger.info(f"Cart store reachable again for user {updated.user_id}")
            self.degraded = False
        except PersistenceUnavailableError as e:
            logger.warning(
                f"Cart store unavailable; cart of user {updated.user_id} persisted to local mirror only: {e}"
            )
            self.degraded = True

        try:
            await self.mirror.write(updated)
        except OSError as e:
            logger.error(f"Failed to write cart mirror for user {updated.user_id}: {e}")

        return updated


class CartSessions:
    """
    Sesje koszykow w procesie: jeden CartStore na usera.

    -reconcile odpala sie przy starcie sesji (pierwszy dostep albo po end())
    -rownolegle starty tej samej sesji czekaja na jeden load
    -najdawniej uzywane sesje wypadaja powyzej limitu (LRU)
    """

    def __init__(self, repo: CartRepo, mirror: CartMirror, limit: int = CART_SESSION_LIMIT):
        self.repo = repo
        self.mirror = mirror
        self.limit = limit
        self._stores: OrderedDict[str, CartStore] = OrderedDict()
        self._pending: dict[str, asyncio.Task] = {}

    async def get(self, user_id: str) -> CartStore:
        if not str(user_id or "").strip():
            raise ValidationError("userId is required")

        store = self._stores.get(user_id)
        if store is not None:
            self._stores.move_to_end(user_id)
            return store

        task = self._pending.get(user_id)
        if task is None:
            task = asyncio.ensure_future(self._open(user_id))
            self._pending[user_id] = task
        return await asyncio.shield(task)

    def end(self, user_id: str) -> bool:
        """Konczy sesje; nastepny get() zrobi reconcile od nowa."""
        return self._stores.pop(user_id, None) is not None

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._stores

    def __len__(self) -> int:
        return len(self._stores)

    async def _open(self, user_id: str) -> CartStore:
        try:
            store = CartStore(self.repo, self.mirror)
            await store.load(user_id)
            self._stores[user_id] = store
            while len(self._stores) > self.limit:
                evicted, _ = self._stores.popitem(last=False)
                logger.info(f"Cart session of user {evicted} evicted")
            return store
        finally:
            self._pending.pop(user_id, None)
