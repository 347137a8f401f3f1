# storefront/services/stock_ledger.py
from typing import Iterable

from storefront.data.store import DocumentStore, Transaction
from storefront.domain.adapters import normalize_stock_row, read_stock
from storefront.domain.errors import (
    InsufficientStockError,
    NotFoundError,
    TransactionConflictError,
    ValidationError,
)
from storefront.domain.schemas import DecrementLine, StockRow, utcnow
from storefront.utils.retry import conflict_retrying
from storefront.utils.settings import (
    DECREMENT_BACKOFF_MAX,
    DECREMENT_BACKOFF_MIN,
    DECREMENT_MAX_ATTEMPTS,
)
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

INVENTORY = "inventory"


def normalize_id(value) -> str:
    return str(value if value is not None else "").strip()


def _require_ids(product_id, size) -> tuple[str, str]:
    p = normalize_id(product_id)
    s = normalize_id(size)
    if not p:
        raise ValidationError("inventory: productId is required")
    if not s:
        raise ValidationError("inventory: size is required")
    return p, s


def stock_key(product_id, size) -> str:
    #format klucza musi zostac {productId}_{size} (istniejace dane)
    p, s = _require_ids(product_id, size)
    return f"{p}_{s}"


def group_lines(lines: Iterable) -> list[DecrementLine]:
    """
    Laczy linie tego samego wariantu (productId, size), sumujac ilosci.
    Kolejnosc = pierwsze wystapienie.
    """
    merged: dict[tuple[str, str], int] = {}
    for line in lines:
        product_id, size, quantity = line
        p, s = _require_ids(product_id, size)
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError(f'Quantity must be > 0 (size "{s}").')
        merged[(p, s)] = merged.get((p, s), 0) + quantity
    return [DecrementLine(p, s, q) for (p, s), q in merged.items()]


class StockLedger:
    """
    Stany magazynowe per (produkt, rozmiar).
    -odczyt (brak wiersza = 0)
    -upsert admina (wartosc absolutna, >= 0)
    -atomowy decrement wielu wierszy naraz (wszystko albo nic)
    """

    def __init__(
        self,
        store: DocumentStore,
        max_attempts: int = DECREMENT_MAX_ATTEMPTS,
        backoff_min: float = DECREMENT_BACKOFF_MIN,
        backoff_max: float = DECREMENT_BACKOFF_MAX,
    ):
        self.store = store
        self.max_attempts = max_attempts
        self.backoff_min = backoff_min
        self.backoff_max = backoff_max

    #query
    async def read(self, product_id: str, size: str) -> int:
        doc = await self.store.get(INVENTORY, stock_key(product_id, size))
        if doc is None:
            return 0
        return max(read_stock(doc), 0)

    async def read_rows_for_product(self, product_id: str) -> list[StockRow]:
        pid = normalize_id(product_id)
        if not pid:
            return []

        doc_ids = await self.store.index_members(INVENTORY, pid)
        docs = await self.store.get_many(INVENTORY, doc_ids)
        rows = [normalize_stock_row(doc_id, doc) for doc_id, doc in docs.items()]
        rows.sort(key=lambda r: r.size)
        return rows

    async def read_all_for_product(self, product_id: str) -> dict[str, int]:
        rows = await self.read_rows_for_product(product_id)
        logger.debug(f"Inventory for product {product_id}: sizes {[r.size for r in rows]}")
        return {r.size: r.stock for r in rows}

    #commands
    async def upsert(self, product_id: str, size: str, stock: int) -> StockRow:
        p, s = _require_ids(product_id, size)
        if isinstance(stock, bool) or not isinstance(stock, int):
            raise ValidationError("Stock must be an integer")
        if stock < 0:
            raise ValidationError(f'Stock cannot be negative (size "{s}")')

        row = StockRow(product_id=p, size=s, stock=stock, updated_at=utcnow())
        await self.store.set(INVENTORY, stock_key(p, s), row.to_document(), index=p)

        logger.info(f"Upsert inventory {p}_{s} -> {stock}")
        return row

    async def remove(self, product_id: str, size: str) -> bool:
        p, s = _require_ids(product_id, size)
        removed = await self.store.delete(INVENTORY, stock_key(p, s), index=p)
        logger.info(f"Removed inventory {p}_{s} (existed: {removed})")
        return removed

    async def decrement_all(self, lines: Iterable) -> list[StockRow]:
        """
        Atomowy decrement wielu wierszy.

        1. otwiera transakcje i czyta wszystkie wiersze (WATCH)
        2. brak wiersza -> NotFoundError, za malo -> InsufficientStockError
           (transakcja przerwana, nic nie zapisane)
        3. zapisuje stock - qty dla kazdego wiersza w jednym EXEC
        4. konflikt zapisu -> ponowienie od odczytu, max_attempts razy
           z exponential backoff, potem TransactionConflictError
        """
        request = group_lines(lines)
        if not request:
            raise ValidationError("Decrement request is empty")

        logger.info(f"Decrement batch: {[tuple(line) for line in request]}")

        try:
            async for attempt in conflict_retrying(
                self.max_attempts, self.backoff_min, self.backoff_max
            ):
                with attempt:
                    rows = await self.store.run_transaction(
                        lambda tx: self._apply_decrement(tx, request)
                    )
        except TransactionConflictError as e:
            logger.error(
                f"Decrement batch gave up after {self.max_attempts} conflicting attempts"
            )
            raise TransactionConflictError(
                f"Gave up after {self.max_attempts} conflicting attempts"
            ) from e

        logger.info(f"Decrement batch committed: {[(r.product_id, r.size, r.stock) for r in rows]}")
        return rows

    async def _apply_decrement(
        self, tx: Transaction, request: list[DecrementLine]
    ) -> list[StockRow]:
        docs = []
        for line in request:
            doc_id = stock_key(line.product_id, line.size)
            docs.append((doc_id, await tx.get(INVENTORY, doc_id)))

        #walidacja wszystkich linii zanim cokolwiek zapiszemy
        for line, (doc_id, doc) in zip(request, docs):
            if doc is None:
                raise NotFoundError(line.product_id, line.size)
            current = read_stock(doc)
            if current < line.quantity:
                raise InsufficientStockError(
                    line.product_id, line.size, line.quantity, max(current, 0)
                )

        now = utcnow()
        rows = []
        for line, (doc_id, doc) in zip(request, docs):
            row = StockRow(
                product_id=line.product_id,
                size=line.size,
                stock=read_stock(doc) - line.quantity,
                updated_at=now,
            )
            tx.set(INVENTORY, doc_id, {**doc, **row.to_document()})
            rows.append(row)
        return rows
