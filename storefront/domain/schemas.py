# storefront/domain/schemas.py
from datetime import datetime, timezone
from decimal import Decimal
from typing import ClassVar, List, NamedTuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Document(BaseModel):
    """Bazowy model dokumentu w store (camelCase w storage, snake_case w kodzie)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class StockRow(Document):
    product_id: str
    size: str
    stock: int = Field(..., ge=0)
    updated_at: datetime | None = None


class ProductSnapshot(Document):
    """Kopia produktu z momentu dodania do koszyka."""

    id: str = Field(..., min_length=1)
    name: str = ""
    price: Decimal = Field(Decimal("0"), ge=0)
    images: List[str] = Field(default_factory=list)
    sizes: List[str] = Field(default_factory=list)
    colors: List[str] = Field(default_factory=list)


class CartItem(Document):
    id: str
    product_id: str
    product: ProductSnapshot | None = None
    quantity: int = Field(..., ge=1)
    size: str = ""
    color: str = ""
    price: Decimal = Field(Decimal("0"), ge=0)

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    @property
    def variant(self) -> tuple[str, str, str]:
        return (self.product_id, self.size, self.color)


class Cart(Document):
    id: str
    user_id: str
    items: List[CartItem] = Field(default_factory=list)
    total: Decimal = Decimal("0")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def empty(cls, user_id: str) -> "Cart":
        return cls(id=user_id, user_id=user_id)

    def recalculate(self) -> "Cart":
        #total nigdy nie jest brany z odczytu, zawsze liczony od nowa
        self.total = sum((i.line_total for i in self.items), Decimal("0"))
        return self

    @property
    def item_count(self) -> int:
        return sum(i.quantity for i in self.items)


class DecrementLine(NamedTuple):
    product_id: str
    size: str
    quantity: int


class ShippingInfo(BaseModel):
    """Adres dostawy; kompletnosc sprawdza checkout, nie schema."""

    type: str = "home"
    name: str = ""
    phone: str = ""
    address_line1: str = ""
    address_line2: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = "India"

    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = ("name", "phone", "address_line1", "city", "state", "zip_code")

    def missing_fields(self) -> list[str]:
        return [f for f in self.REQUIRED_FIELDS if not str(getattr(self, f) or "").strip()]


# ---- API ----


class AddItemIn(BaseModel):
    product: ProductSnapshot
    size: str
    color: str = ""
    quantity: int = 1


class UpdateQuantityIn(BaseModel):
    quantity: int


class StockIn(BaseModel):
    stock: int


class CartOut(BaseModel):
    id: str
    user_id: str
    items: List[CartItem]
    total: Decimal
    item_count: int
    degraded: bool = False


class AvailabilityOut(BaseModel):
    product_id: str
    stock_by_size: dict[str, int]
    in_stock: bool
    first_in_stock_size: str | None = None


class PlaceOrderIn(BaseModel):
    user_id: str = Field(..., min_length=1)
    shipping_address: ShippingInfo
    payment_method: str = "card"


class OrderItemOut(BaseModel):
    product_id: str
    name: str
    image: str | None = None
    size: str
    color: str
    qty: int
    price: Decimal

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    id: int
    order_number: int
    order_code: str
    user_id: str
    status: str
    total: Decimal
    payment_method: str
    shipping_address: dict
    order_date: datetime
    estimated_delivery: datetime | None = None
    items: List[OrderItemOut]

    model_config = ConfigDict(from_attributes=True)
