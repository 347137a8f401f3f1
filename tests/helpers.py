from storefront.data.store import DocumentStore
from storefront.domain.errors import PersistenceUnavailableError
from storefront.domain.schemas import ProductSnapshot, ShippingInfo
from storefront.services.notification_service import NotificationService


class FlakyStore(DocumentStore):
    """Store, ktory mozna "wylaczyc" (down=True) - jak niedostepny Redis."""

    def __init__(self, client):
        super().__init__(client)
        self.down = False

    def _check(self):
        if self.down:
            raise PersistenceUnavailableError("store is down")

    async def get(self, collection, doc_id):
        self._check()
        return await super().get(collection, doc_id)

    async def set(self, collection, doc_id, data, index=None):
        self._check()
        await super().set(collection, doc_id, data, index=index)


class RecordingNotifications(NotificationService):
    def __init__(self):
        self.orders = []
        self.reconciliations = []

    def send_order_notification(self, user_id, order_id):
        self.orders.append((user_id, order_id))
        return super().send_order_notification(user_id, order_id)

    def report_reconciliation_required(self, event):
        self.reconciliations.append(event)
        return super().report_reconciliation_required(event)


def make_product(product_id="p1", price="500", **extra) -> ProductSnapshot:
    return ProductSnapshot(
        id=product_id,
        name=extra.pop("name", f"Product {product_id}"),
        price=price,
        images=extra.pop("images", [f"https://img.example/{product_id}.jpg"]),
        sizes=extra.pop("sizes", ["S", "M", "L"]),
        colors=extra.pop("colors", ["black"]),
    )


def make_shipping(**overrides) -> ShippingInfo:
    data = {
        "name": "Asha Rao",
        "phone": "+91 98765 43210",
        "address_line1": "12 MG Road",
        "city": "Bengaluru",
        "state": "KA",
        "zip_code": "560001",
    }
    data.update(overrides)
    return ShippingInfo(**data)
