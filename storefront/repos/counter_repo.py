# storefront/repos/counter_repo.py
from storefront.data.store import DocumentStore, Transaction
from storefront.domain.schemas import utcnow
from storefront.utils.retry import conflict_retrying
from storefront.utils.settings import (
    DECREMENT_BACKOFF_MAX,
    DECREMENT_BACKOFF_MIN,
    DECREMENT_MAX_ATTEMPTS,
)

COUNTERS = "counters"


class CounterRepo:
    """Licznik sekwencyjny w dokumencie counters:{name}, inkrementowany w transakcji."""

    def __init__(
        self,
        store: DocumentStore,
        attempts: int = DECREMENT_MAX_ATTEMPTS,
        min_wait: float = DECREMENT_BACKOFF_MIN,
        max_wait: float = DECREMENT_BACKOFF_MAX,
    ):
        self.store = store
        self.attempts = attempts
        self.min_wait = min_wait
        self.max_wait = max_wait

    async def next_value(self, name: str, start: int) -> int:
        async def bump(tx: Transaction) -> int:
            doc = await tx.get(COUNTERS, name)
            current = (doc or {}).get("value")
            #pierwsze uzycie albo smieci w dokumencie -> start
            value = current + 1 if isinstance(current, int) and not isinstance(current, bool) else start
            tx.set(COUNTERS, name, {"value": value, "updatedAt": utcnow().isoformat()})
            return value

        async for attempt in conflict_retrying(self.attempts, self.min_wait, self.max_wait):
            with attempt:
                return await self.store.run_transaction(bump)
