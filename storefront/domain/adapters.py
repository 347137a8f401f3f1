# storefront/domain/adapters.py
"""
Normalizacja dokumentow na granicy store.

Stare dokumenty maja rozne warianty pol (qty/quantity, product_id/productId,
ceny jako stringi, timestampy jako epoch). Tylko ten modul o tym wie, reszta
silnika widzi wylacznie kanoniczne modele z domain.schemas.
"""
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from storefront.domain.schemas import Cart, CartItem, ProductSnapshot, StockRow


def _first(raw: dict, *names: str, default: Any = None) -> Any:
    for name in names:
        value = raw.get(name)
        if value is not None:
            return value
    return default


def _text(value: Any) -> str:
    return str(value if value is not None else "").strip()


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def _decimal(value: Any) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0")


def _timestamp(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        #epoch w ms (Date.now()) albo w sekundach
        seconds = value / 1000 if value > 1e11 else value
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    if isinstance(value, dict) and "seconds" in value:
        return datetime.fromtimestamp(_int(value["seconds"]), tz=timezone.utc)
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def _strings(values: Any) -> list[str]:
    return [v for v in (values or []) if isinstance(v, str)]


def normalize_product(raw: Any) -> ProductSnapshot | None:
    if not isinstance(raw, dict):
        return None

    product_id = _text(_first(raw, "id", "productId", "product_id"))
    if not product_id:
        return None

    images = _strings(raw.get("images"))
    if not images and isinstance(raw.get("image_url"), str):
        images = [raw["image_url"]]

    return ProductSnapshot(
        id=product_id,
        name=_text(raw.get("name")),
        price=max(_decimal(_first(raw, "price", default=0)), Decimal("0")),
        images=images,
        sizes=_strings(raw.get("sizes")),
        colors=_strings(raw.get("colors")),
    )


def normalize_cart_item(raw: dict, position: int = 0) -> CartItem | None:
    product_id = _text(_first(raw, "productId", "product_id"))
    quantity = _int(_first(raw, "quantity", "qty", default=1), default=1)
    if not product_id or quantity < 1:
        return None

    size = _text(raw.get("size"))
    color = _text(raw.get("color"))
    item_id = _text(raw.get("id")) or f"{product_id}-{size}-{color}-{position}"

    return CartItem(
        id=item_id,
        product_id=product_id,
        product=normalize_product(raw.get("product")),
        quantity=quantity,
        size=size,
        color=color,
        price=max(_decimal(_first(raw, "price", default=0)), Decimal("0")),
    )


def normalize_cart_document(user_id: str, raw: dict) -> Cart:
    items = []
    for position, entry in enumerate(raw.get("items") or []):
        if not isinstance(entry, dict):
            continue
        item = normalize_cart_item(entry, position)
        if item is not None:
            items.append(item)

    cart = Cart(
        id=user_id,
        user_id=_text(_first(raw, "userId", "user_id")) or user_id,
        items=items,
    )
    created = _timestamp(_first(raw, "createdAt", "created_at"))
    updated = _timestamp(_first(raw, "updatedAt", "updated_at"))
    if created:
        cart.created_at = created
    if updated:
        cart.updated_at = updated

    #zapisany total ignorujemy
    return cart.recalculate()


def normalize_stock_row(doc_id: str, raw: dict) -> StockRow:
    product_id = _text(_first(raw, "productId", "product_id"))
    size = _text(raw.get("size"))
    if not product_id or not size:
        #stare wiersze bez pol - klucz to zawsze {productId}_{size}
        head, _, tail = doc_id.rpartition("_")
        product_id = product_id or head
        size = size or tail

    return StockRow(
        product_id=product_id,
        size=size,
        stock=max(_int(_first(raw, "stock", "qty", "quantity", default=0)), 0),
        updated_at=_timestamp(_first(raw, "updatedAt", "updated_at")),
    )


def read_stock(raw: dict | None) -> int:
    """Aktualny stan z surowego dokumentu (bez clampowania do zera)."""
    if raw is None:
        return 0
    return _int(_first(raw, "stock", "qty", "quantity", default=0))
