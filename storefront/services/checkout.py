# storefront/services/checkout.py
from enum import Enum

from storefront.domain.errors import CheckoutError, ReconciliationRequiredError, ValidationError
from storefront.domain.schemas import OrderOut, ShippingInfo
from storefront.services.cart_store import CartStore
from storefront.services.notification_service import NotificationService
from storefront.services.order_service import OrderService
from storefront.services.stock_ledger import StockLedger, group_lines
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CheckoutState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    DECREMENTING = "decrementing"
    ORDER_CREATED = "order_created"
    FAILED = "failed"


class CheckoutCoordinator:
    """
    Zlozenie zamowienia: Idle -> Validating -> Decrementing -> OrderCreated | Failed

    -walidacja (niepusty koszyk, kompletny adres)
    -atomowy decrement wszystkich linii (StockLedger, nigdy cache)
    -zamowienie tylko po udanym decremencie, potem czyszczenie koszyka
    -blad zamowienia po decremencie = ReconciliationRequiredError, bez retry
    """

    def __init__(
        self,
        ledger: StockLedger,
        cart_store: CartStore,
        orders: OrderService,
        notification_service: NotificationService | None = None,
    ):
        self.ledger = ledger
        self.cart_store = cart_store
        self.orders = orders
        self.notification_service = notification_service or NotificationService()
        self.state = CheckoutState.IDLE

    async def place_order(self, shipping_address: ShippingInfo, payment_method: str = "card") -> OrderOut:
        self.state = CheckoutState.VALIDATING

        #lock koszyka przez caly checkout: drugi submit widzi juz pusty koszyk
        async with self.cart_store.checkout() as cart:
            if cart is None or not cart.items:
                self._fail("Cart is empty")
            missing = shipping_address.missing_fields()
            if missing:
                self._fail(f"Please fill in all required address fields: {', '.join(missing)}")
            if any(not item.size for item in cart.items):
                self._fail("Missing size for an item in the cart.")
            try:
                request = group_lines((item.product_id, item.size, item.quantity) for item in cart.items)
            except ValidationError as e:
                self._fail(str(e))

            self.state = CheckoutState.DECREMENTING

            try:
                await self.ledger.decrement_all(request)
            except CheckoutError as e:
                self.state = CheckoutState.FAILED
                logger.error(f"Checkout failed for user {cart.user_id}: {e}")
                raise

            #od tego miejsca stan jest zdjety
            try:
                created = await self.orders.create_order_from_cart(cart, shipping_address, payment_method)
            except Exception as e:
                self.state = CheckoutState.FAILED
                lines = [tuple(line) for line in request]
                logger.critical(
                    f"Reconciliation required: stock decremented for user {cart.user_id} "
                    f"but order creation failed: {e!r}; lines={lines}"
                )
                self.notification_service.report_reconciliation_required(
                    {
                        "user_id": cart.user_id,
                        "lines": [list(line) for line in lines],
                        "total": str(cart.total),
                        "reason": repr(e),
                    }
                )
                raise ReconciliationRequiredError(cart.user_id, lines, e) from e

            self.state = CheckoutState.ORDER_CREATED
            await self.cart_store._clear()

        logger.info(f"Checkout complete for user {cart.user_id}: order {created.order_code}")
        return self.orders.confirm(created)

    def _fail(self, message: str):
        self.state = CheckoutState.FAILED
        logger.warning(f"Checkout rejected: {message}")
        raise ValidationError(message)
