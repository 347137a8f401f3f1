# storefront/services/availability_cache.py
import asyncio
from typing import Sequence

from storefront.domain.schemas import AvailabilityOut
from storefront.services.stock_ledger import StockLedger, normalize_id
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class AvailabilityCache:
    """
    Pamiec podreczna stanow per produkt, tylko dla UI ("czy da sie zamowic").

    Wypelniana przy pierwszym missie, bez TTL i bez uniewazniania.
    Rownolegle missy tego samego produktu czekaja na jeden wspolny odczyt.
    Checkout NIGDY nie czyta stad, tylko przez StockLedger w transakcji.
    """

    def __init__(self, ledger: StockLedger):
        self.ledger = ledger
        self._values: dict[str, dict[str, int]] = {}
        self._pending: dict[str, asyncio.Task] = {}

    async def get(self, product_id: str) -> dict[str, int]:
        #ten sam klucz co w StockLedger (" p1" == "p1")
        product_id = normalize_id(product_id)
        cached = self._values.get(product_id)
        if cached is not None:
            return dict(cached)

        task = self._pending.get(product_id)
        if task is None:
            logger.info(f"Availability miss for product {product_id}")
            task = asyncio.ensure_future(self._fetch(product_id))
            self._pending[product_id] = task

        #shield: anulowanie jednego czekajacego nie zabija odczytu pozostalym
        return dict(await asyncio.shield(task))

    async def _fetch(self, product_id: str) -> dict[str, int]:
        try:
            value = await self.ledger.read_all_for_product(product_id)
            self._values[product_id] = value
            return value
        finally:
            self._pending.pop(product_id, None)

    async def availability(self, product_id: str, sizes: Sequence[str] = ()) -> AvailabilityOut:
        product_id = normalize_id(product_id)
        stock_by_size = await self.get(product_id)

        first_in_stock = next((s for s in sizes if stock_by_size.get(s, 0) > 0), None)
        #produkty bez rozmiarow: wystarczy dowolny wiersz ze stanem
        in_stock = any(v > 0 for v in stock_by_size.values())

        return AvailabilityOut(
            product_id=product_id,
            stock_by_size=stock_by_size,
            in_stock=in_stock,
            first_in_stock_size=first_in_stock,
        )

    def __contains__(self, product_id: str) -> bool:
        return normalize_id(product_id) in self._values
