# storefront/data/store.py
import json
from typing import Awaitable, Callable, Iterable, TypeVar

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from redis.exceptions import WatchError

from storefront.domain.errors import PersistenceUnavailableError, TransactionConflictError
from storefront.utils.settings import REDIS_SOCKET_TIMEOUT, REDIS_URL
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

_UNREACHABLE = (RedisConnectionError, RedisTimeoutError, OSError)


def create_redis(url: str | None = None, timeout: float = REDIS_SOCKET_TIMEOUT) -> redis.Redis:
    #krotki timeout - niedostepny store ma failowac szybko, nie blokowac UI
    return redis.Redis.from_url(
        url or REDIS_URL,
        decode_responses=True,
        socket_timeout=timeout,
        socket_connect_timeout=timeout,
    )


def _encode(data: dict) -> str:
    return json.dumps(data, separators=(",", ":"))


def _decode(raw: str | None) -> dict | None:
    if raw is None:
        return None
    return json.loads(raw)


class Transaction:
    """
    Transakcja read-then-write na wielu kluczach (WATCH/MULTI/EXEC).
    -get() obserwuje klucz (WATCH) i od razu czyta
    -set() tylko buforuje zapis, wszystkie zapisy ida w jednym EXEC
    """

    def __init__(self, store: "DocumentStore", pipe):
        self._store = store
        self._pipe = pipe
        self.writes: list[tuple[str, str]] = []

    async def get(self, collection: str, doc_id: str) -> dict | None:
        key = self._store.key(collection, doc_id)
        await self._pipe.watch(key)
        return _decode(await self._pipe.get(key))

    def set(self, collection: str, doc_id: str, data: dict) -> None:
        self.writes.append((self._store.key(collection, doc_id), _encode(data)))


class DocumentStore:
    """
    Dokumenty JSON w Redisie adresowane przez (kolekcja, id).

    Klucz: "{kolekcja}:{id}". Id nie jest przetwarzane, np. wiersz magazynu
    ma id dokladnie "{productId}_{size}".
    """

    def __init__(self, client: redis.Redis):
        self.redis = client

    @staticmethod
    def key(collection: str, doc_id: str) -> str:
        return f"{collection}:{doc_id}"

    @staticmethod
    def index_key(collection: str, name: str) -> str:
        return f"{collection}-index:{name}"

    async def get(self, collection: str, doc_id: str) -> dict | None:
        try:
            raw = await self.redis.get(self.key(collection, doc_id))
        except _UNREACHABLE as e:
            raise PersistenceUnavailableError(f"GET {collection}/{doc_id} failed: {e}") from e
        return _decode(raw)

    async def get_many(self, collection: str, doc_ids: Iterable[str]) -> dict[str, dict]:
        ids = list(doc_ids)
        if not ids:
            return {}
        try:
            raws = await self.redis.mget([self.key(collection, i) for i in ids])
        except _UNREACHABLE as e:
            raise PersistenceUnavailableError(f"MGET {collection} failed: {e}") from e
        return {i: _decode(raw) for i, raw in zip(ids, raws) if raw is not None}

    async def set(
        self,
        collection: str,
        doc_id: str,
        data: dict,
        index: str | None = None,
    ) -> None:
        """Zapis calego dokumentu; z index dokument trafia tez do indeksu w tym samym MULTI."""
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.set(self.key(collection, doc_id), _encode(data))
                if index is not None:
                    pipe.sadd(self.index_key(collection, index), doc_id)
                await pipe.execute()
        except _UNREACHABLE as e:
            raise PersistenceUnavailableError(f"SET {collection}/{doc_id} failed: {e}") from e

    async def delete(self, collection: str, doc_id: str, index: str | None = None) -> bool:
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.delete(self.key(collection, doc_id))
                if index is not None:
                    pipe.srem(self.index_key(collection, index), doc_id)
                deleted, *_ = await pipe.execute()
        except _UNREACHABLE as e:
            raise PersistenceUnavailableError(f"DEL {collection}/{doc_id} failed: {e}") from e
        return bool(deleted)

    async def index_members(self, collection: str, name: str) -> list[str]:
        try:
            members = await self.redis.smembers(self.index_key(collection, name))
        except _UNREACHABLE as e:
            raise PersistenceUnavailableError(f"SMEMBERS {collection}/{name} failed: {e}") from e
        return sorted(members)

    async def run_transaction(self, body: Callable[[Transaction], Awaitable[T]]) -> T:
        """
        Jedna proba transakcji.

        body czyta przez tx.get() i buforuje zapisy przez tx.set(); wyjatek
        z body przerywa transakcje bez zadnego zapisu. Jesli ktos zmienil
        obserwowany klucz miedzy odczytem a EXEC -> TransactionConflictError
        (bez retry, to robi wolajacy).
        """
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                tx = Transaction(self, pipe)
                result = await body(tx)
                if tx.writes:
                    pipe.multi()
                    for key, value in tx.writes:
                        pipe.set(key, value)
                    await pipe.execute()
                return result
        except WatchError as e:
            logger.warning("Transaction conflict, watched key changed before commit")
            raise TransactionConflictError() from e
        except _UNREACHABLE as e:
            raise PersistenceUnavailableError(f"Transaction failed: {e}") from e

    async def ping(self) -> bool:
        try:
            return bool(await self.redis.ping())
        except _UNREACHABLE:
            return False
