# storefront/services/cart_reconciler.py
from typing import NamedTuple

from storefront.domain.errors import PersistenceUnavailableError
from storefront.domain.schemas import Cart
from storefront.repos.cart_mirror import CartMirror
from storefront.repos.cart_repo import CartRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class ReconciledCart(NamedTuple):
    cart: Cart
    degraded: bool
    source: str  # remote | mirror | empty


class CartReconciler:
    """
    Start sesji koszyka (raz, gdy znamy userId).

    Polityka:
    -jest zdalny dokument -> wygrywa zdalny
    -brak zdalnego -> koszyk z lokalnego mirrora (albo pusty), od razu zapisany zdalnie
    -store niedostepny -> mirror albo pusty koszyk, tryb degraded
    Bez mergowania pol - pierwsze zrodlo wygrywa na cala sesje.
    """

    def __init__(self, repo: CartRepo, mirror: CartMirror):
        self.repo = repo
        self.mirror = mirror

    async def reconcile(self, user_id: str) -> ReconciledCart:
        try:
            remote = await self.repo.get_cart(user_id)
        except PersistenceUnavailableError as e:
            logger.warning(f"Cart store unreachable for user {user_id}, using local mirror: {e}")
            local = await self.mirror.read(user_id)
            if local is not None:
                return ReconciledCart(self._own(local, user_id), True, "mirror")
            return ReconciledCart(Cart.empty(user_id), True, "empty")

        if remote is not None:
            logger.info(f"Loaded remote cart for user {user_id} ({len(remote.items)} items)")
            await self._refresh_mirror(remote)
            return ReconciledCart(remote, False, "remote")

        local = await self.mirror.read(user_id)
        source = "mirror" if local is not None else "empty"
        cart = self._own(local, user_id) if local is not None else Cart.empty(user_id)

        try:
            await self.repo.save_cart(cart)
        except PersistenceUnavailableError as e:
            logger.warning(f"Could not seed remote cart for user {user_id}: {e}")
            return ReconciledCart(cart, True, source)

        logger.info(f"Seeded remote cart for user {user_id} from {source} ({len(cart.items)} items)")
        await self._refresh_mirror(cart)
        return ReconciledCart(cart, False, source)

    @staticmethod
    def _own(cart: Cart, user_id: str) -> Cart:
        #mirror jest kluczowany userId, dokument zawsze nalezy do tego usera
        return cart.model_copy(update={"id": user_id, "user_id": user_id}).recalculate()

    async def _refresh_mirror(self, cart: Cart) -> None:
        try:
            await self.mirror.write(cart)
        except OSError as e:
            logger.error(f"Failed to write cart mirror for user {cart.user_id}: {e}")
