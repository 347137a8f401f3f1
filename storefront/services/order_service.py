# storefront/services/order_service.py
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel
from storefront.domain.schemas import Cart, OrderOut, ShippingInfo, utcnow
from storefront.repos.counter_repo import CounterRepo
from storefront.repos.order_repo import OrderRepo
from storefront.services.notification_service import NotificationService
from storefront.utils.settings import (
    ESTIMATED_DELIVERY_DAYS,
    ORDER_CODE_PREFIX,
    ORDER_SEQUENCE_START,
)
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def format_order_code(seq: int, year: int, prefix: str = ORDER_CODE_PREFIX) -> str:
    #OD + 2025 + 100001 => OD2025100001
    return f"{prefix}{year}{seq:06d}"


class OrderService:
    """
    Serwis odpowiedzialny za domenę zamówień.
    Nie dotyka magazynu - zamowienie powstaje dopiero po udanym decremencie
    (pilnuje tego CheckoutCoordinator).
    """

    def __init__(
        self,
        db: AsyncSession,
        counters: CounterRepo,
        notification_service: NotificationService | None = None,
    ):
        self.repo = OrderRepo(db)
        self.counters = counters
        self.notification_service = notification_service or NotificationService()

    async def create_order_from_cart(
        self,
        cart: Cart,
        shipping_address: ShippingInfo,
        payment_method: str,
    ) -> OrderModel:
        """
        Use Case: Tworzenie zamówienia z koszyka.

        1. Kolejny numer z licznika counters:orders
        2. Snapshot linii koszyka (kopia, nie referencja)
        3. Zapis zamówienia
        """
        order_number = await self.counters.next_value("orders", ORDER_SEQUENCE_START)
        order_date = utcnow()
        address = shipping_address.model_dump()

        order = OrderModel(
            order_number=order_number,
            order_code=format_order_code(order_number, order_date.year),
            user_id=cart.user_id,
            status="pending",
            total=cart.total,
            payment_method=payment_method,
            shipping_address=address,
            billing_address=address,
            order_date=order_date,
            estimated_delivery=order_date + timedelta(days=ESTIMATED_DELIVERY_DAYS),
            items=[
                OrderItemModel(
                    product_id=item.product_id,
                    name=item.product.name if item.product else "",
                    image=item.product.images[0] if item.product and item.product.images else None,
                    size=item.size,
                    color=item.color,
                    qty=item.quantity,
                    price=item.price,
                )
                for item in cart.items
            ],
        )

        created = await self.repo.create_order(order)

        logger.info(f"Order {created.order_code} (id {created.id}) created for user {cart.user_id}")
        return created

    def confirm(self, order: OrderModel) -> OrderOut:
        """
        Kroki po commicie: powiadomienie (best effort) i widok zamowienia.
        Zamowienie juz istnieje, wiec blad tutaj to nie jest przypadek do rekoncyliacji.
        """
        self.notification_service.send_order_notification(order.user_id, order.id)
        return OrderOut.model_validate(order)

    async def get_order(self, order_id: int, user_id: str) -> OrderOut:
        """
        Use Case: Pobranie zamówienia (Query).
        """
        order = await self.repo.get_order(order_id)

        if not order:
            raise ValueError("Order not found")

        if order.user_id != user_id:
            raise PermissionError("Access to this order is denied")

        return OrderOut.model_validate(order)

    async def list_orders(self, user_id: str) -> list[OrderOut]:
        orders = await self.repo.list_for_user(user_id)
        return [OrderOut.model_validate(o) for o in orders]
