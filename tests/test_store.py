import pytest

from storefront.domain.errors import PersistenceUnavailableError, TransactionConflictError
from storefront.repos.counter_repo import CounterRepo
from storefront.utils.settings import (
    DECREMENT_BACKOFF_MAX,
    DECREMENT_BACKOFF_MIN,
    DECREMENT_MAX_ATTEMPTS,
)


async def test_set_get_and_index(store):
    await store.set("inventory", "p1_M", {"stock": 1}, index="p1")
    await store.set("inventory", "p1_L", {"stock": 2}, index="p1")

    assert await store.get("inventory", "p1_M") == {"stock": 1}
    assert await store.index_members("inventory", "p1") == ["p1_L", "p1_M"]
    assert await store.get_many("inventory", ["p1_M", "nope"]) == {"p1_M": {"stock": 1}}


async def test_transaction_writes_only_on_success(store):
    await store.set("c", "a", {"v": 1})

    async def body(tx):
        doc = await tx.get("c", "a")
        tx.set("c", "a", {"v": doc["v"] + 1})
        raise ValueError("abort")

    with pytest.raises(ValueError):
        await store.run_transaction(body)
    assert await store.get("c", "a") == {"v": 1}


async def test_watched_key_change_is_a_conflict(store, redis_client):
    await store.set("c", "a", {"v": 1})

    async def body(tx):
        await tx.get("c", "a")
        await redis_client.set(store.key("c", "a"), '{"v": 5}')
        tx.set("c", "a", {"v": 2})

    with pytest.raises(TransactionConflictError):
        await store.run_transaction(body)
    assert await store.get("c", "a") == {"v": 5}


async def test_unreachable_server(store, server):
    server.connected = False

    with pytest.raises(PersistenceUnavailableError) as exc:
        await store.get("c", "a")
    assert exc.value.transient is True

    with pytest.raises(PersistenceUnavailableError):
        await store.set("c", "a", {"v": 1})
    assert await store.ping() is False


async def test_counter_is_sequential_and_uses_configured_retry_bounds(store):
    counters = CounterRepo(store)

    assert (counters.attempts, counters.min_wait, counters.max_wait) == (
        DECREMENT_MAX_ATTEMPTS,
        DECREMENT_BACKOFF_MIN,
        DECREMENT_BACKOFF_MAX,
    )
    assert [await counters.next_value("orders", 100001) for _ in range(3)] == [100001, 100002, 100003]
