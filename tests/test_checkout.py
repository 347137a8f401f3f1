"""CheckoutCoordinator: walidacja, atomowy decrement, zamowienie, czyszczenie koszyka."""

import asyncio
import re
from decimal import Decimal

import pytest

from storefront.domain.errors import (
    InsufficientStockError,
    NotFoundError,
    ReconciliationRequiredError,
    TransactionConflictError,
    ValidationError,
)
from storefront.domain.schemas import CartItem
from storefront.repos.cart_mirror import CartMirror
from storefront.repos.cart_repo import CartRepo
from storefront.services.cart_store import CartStore
from storefront.services.checkout import CheckoutCoordinator, CheckoutState
from storefront.services.order_service import OrderService, format_order_code
from tests.helpers import RecordingNotifications, make_product, make_shipping


@pytest.fixture
async def cart_store(cart_repo, mirror):
    store = CartStore(cart_repo, mirror)
    await store.load("u1")
    return store


@pytest.fixture
def orders(db, counters, notifications):
    return OrderService(db, counters, notifications)


@pytest.fixture
def coordinator(ledger, cart_store, orders, notifications):
    return CheckoutCoordinator(ledger, cart_store, orders, notifications)


class BrokenOrders:
    async def create_order_from_cart(self, cart, shipping_address, payment_method):
        raise RuntimeError("orders table is gone")


class TestHappyPath:
    async def test_order_created_stock_decremented_cart_cleared(
        self, coordinator, ledger, cart_store, notifications
    ):
        await ledger.upsert("p1", "M", 3)
        await ledger.upsert("p2", "L", 1)
        await cart_store.add(make_product("p1", price="500"), "M", "black", 2)
        await cart_store.add(make_product("p2", price="300"), "L", "white", 1)

        order = await coordinator.place_order(make_shipping(), "upi")

        assert coordinator.state is CheckoutState.ORDER_CREATED
        assert order.total == Decimal("1300")
        assert order.status == "pending"
        assert order.payment_method == "upi"
        assert order.user_id == "u1"
        assert [(i.product_id, i.size, i.qty) for i in order.items] == [("p1", "M", 2), ("p2", "L", 1)]
        assert order.items[0].image == "https://img.example/p1.jpg"
        assert order.shipping_address["city"] == "Bengaluru"

        assert await ledger.read("p1", "M") == 1
        assert await ledger.read("p2", "L") == 0

        assert cart_store.cart.items == []
        assert cart_store.cart.total == Decimal("0")
        assert notifications.orders == [("u1", order.id)]

    async def test_order_numbers_are_sequential(self, coordinator, ledger, cart_store):
        await ledger.upsert("p1", "M", 10)

        codes = []
        for _ in range(2):
            await cart_store.add(make_product("p1"), "M", "black")
            order = await coordinator.place_order(make_shipping())
            codes.append((order.order_number, order.order_code))

        assert [n for n, _ in codes] == [100001, 100002]
        assert re.fullmatch(r"OD\d{4}100001", codes[0][1])
        assert format_order_code(42, 2025) == "OD2025000042"

    async def test_estimated_delivery_is_a_week_out(self, coordinator, ledger, cart_store):
        await ledger.upsert("p1", "M", 1)
        await cart_store.add(make_product("p1"), "M", "black")

        order = await coordinator.place_order(make_shipping())

        assert (order.estimated_delivery - order.order_date).days == 7

    async def test_same_variant_in_two_rows_is_summed(self, coordinator, ledger, cart_store):
        await ledger.upsert("p1", "M", 3)
        await cart_store.add(make_product("p1"), "M", "black", 2)
        await cart_store.add(make_product("p1"), "M", "red", 2)

        with pytest.raises(InsufficientStockError) as exc:
            await coordinator.place_order(make_shipping())

        assert exc.value.requested == 4
        assert exc.value.available == 3
        assert await ledger.read("p1", "M") == 3


class TestRejections:
    async def test_empty_cart(self, coordinator):
        with pytest.raises(ValidationError):
            await coordinator.place_order(make_shipping())
        assert coordinator.state is CheckoutState.FAILED

    async def test_incomplete_address(self, coordinator, ledger, cart_store):
        await ledger.upsert("p1", "M", 1)
        await cart_store.add(make_product("p1"), "M", "black")

        with pytest.raises(ValidationError) as exc:
            await coordinator.place_order(make_shipping(city="", zip_code="  "))

        assert "city" in str(exc.value) and "zip_code" in str(exc.value)
        assert await ledger.read("p1", "M") == 1

    async def test_legacy_item_without_size(self, coordinator, cart_store):
        #add() nie przepusci pustego rozmiaru, ale stary dokument moze go miec
        legacy = CartItem(id="old-1", product_id="p1", quantity=1, size="", price=Decimal("10"))
        await cart_store.save(cart_store.cart.model_copy(update={"items": [legacy]}))

        with pytest.raises(ValidationError):
            await coordinator.place_order(make_shipping())

    async def test_insufficient_stock_keeps_everything(self, coordinator, ledger, cart_store, db):
        await ledger.upsert("p1", "M", 5)
        await ledger.upsert("p2", "L", 0)
        await cart_store.add(make_product("p1"), "M", "black", 1)
        await cart_store.add(make_product("p2"), "L", "black", 1)

        with pytest.raises(InsufficientStockError) as exc:
            await coordinator.place_order(make_shipping())

        assert coordinator.state is CheckoutState.FAILED
        assert exc.value.size == "L"
        assert 'size "L"' in exc.value.user_message
        assert await ledger.read("p1", "M") == 5
        assert len(cart_store.cart.items) == 2

    async def test_untracked_variant(self, coordinator, cart_store):
        await cart_store.add(make_product("p1"), "XXL", "black")

        with pytest.raises(NotFoundError) as exc:
            await coordinator.place_order(make_shipping())

        assert exc.value.size == "XXL"
        assert exc.value.transient is False

    async def test_conflict_is_transient(self, coordinator, ledger, cart_store, monkeypatch):
        await ledger.upsert("p1", "M", 1)
        await cart_store.add(make_product("p1"), "M", "black")

        async def always_conflicts(lines):
            raise TransactionConflictError("gave up")

        monkeypatch.setattr(ledger, "decrement_all", always_conflicts)

        with pytest.raises(TransactionConflictError) as exc:
            await coordinator.place_order(make_shipping())

        assert exc.value.transient is True
        assert coordinator.state is CheckoutState.FAILED
        assert len(cart_store.cart.items) == 1


class TestReconciliation:
    async def test_order_failure_after_decrement(self, ledger, cart_store, notifications):
        await ledger.upsert("p1", "M", 2)
        await cart_store.add(make_product("p1", price="10"), "M", "black", 2)
        coordinator = CheckoutCoordinator(ledger, cart_store, BrokenOrders(), notifications)

        with pytest.raises(ReconciliationRequiredError) as exc:
            await coordinator.place_order(make_shipping())

        assert coordinator.state is CheckoutState.FAILED
        assert exc.value.lines == [("p1", "M", 2)]
        #bez kompensacji: stan zostaje zdjety
        assert await ledger.read("p1", "M") == 0
        #koszyk nie jest czyszczony
        assert len(cart_store.cart.items) == 1
        assert notifications.reconciliations == [
            {
                "user_id": "u1",
                "lines": [["p1", "M", 2]],
                "total": "20",
                "reason": "RuntimeError('orders table is gone')",
            }
        ]


async def test_two_buyers_race_for_last_unit(ledger, flaky_store, tmp_path, db, counters, notifications):
    await ledger.upsert("p1", "M", 1)

    coordinators = []
    for user in ("alice", "bob"):
        store = CartStore(CartRepo(flaky_store), CartMirror(tmp_path / user))
        await store.load(user)
        await store.add(make_product("p1"), "M", "black")
        coordinators.append(
            CheckoutCoordinator(ledger, store, OrderService(db, counters, notifications), notifications)
        )

    results = await asyncio.gather(
        *(c.place_order(make_shipping()) for c in coordinators),
        return_exceptions=True,
    )

    errors = [r for r in results if isinstance(r, Exception)]
    assert len(errors) == 1
    assert isinstance(errors[0], InsufficientStockError)
    assert (errors[0].available, errors[0].requested) == (0, 1)
    assert await ledger.read("p1", "M") == 0
    assert sorted(c.state for c in coordinators) == sorted(
        [CheckoutState.ORDER_CREATED, CheckoutState.FAILED]
    )


class SlowOrders(OrderService):
    """Zamowienie zapisuje sie z opoznieniem - okno na rownolegle akcje usera."""

    async def create_order_from_cart(self, cart, shipping_address, payment_method):
        await asyncio.sleep(0.05)
        return await super().create_order_from_cart(cart, shipping_address, payment_method)


class TestCartLockDuringCheckout:
    async def test_item_added_during_checkout_survives(self, ledger, cart_store, db, counters, notifications):
        await ledger.upsert("p1", "M", 5)
        await cart_store.add(make_product("p1"), "M", "black")
        coordinator = CheckoutCoordinator(ledger, cart_store, SlowOrders(db, counters, notifications), notifications)

        async def add_later():
            await asyncio.sleep(0.01)
            return await cart_store.add(make_product("p2"), "L", "black")

        order, _ = await asyncio.gather(coordinator.place_order(make_shipping()), add_later())

        assert [i.product_id for i in order.items] == ["p1"]
        #dodanie czekalo na koniec checkoutu, clear() go nie zjadl
        assert [i.product_id for i in cart_store.cart.items] == ["p2"]

    async def test_double_submit_places_one_order(self, ledger, cart_store, db, counters, notifications):
        await ledger.upsert("p1", "M", 5)
        await cart_store.add(make_product("p1"), "M", "black", 2)
        coordinators = [
            CheckoutCoordinator(ledger, cart_store, SlowOrders(db, counters, notifications), notifications)
            for _ in range(2)
        ]

        results = await asyncio.gather(
            *(c.place_order(make_shipping()) for c in coordinators),
            return_exceptions=True,
        )

        errors = [r for r in results if isinstance(r, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], ValidationError)
        assert str(errors[0]) == "Cart is empty"
        assert await ledger.read("p1", "M") == 3
        assert len(notifications.orders) == 1


class ExplodingNotifications(RecordingNotifications):
    def send_order_notification(self, user_id, order_id):
        raise RuntimeError("notification backend exploded")


async def test_failure_after_commit_is_not_reconciliation(ledger, cart_store, db, counters):
    notifications = ExplodingNotifications()
    orders = OrderService(db, counters, notifications)
    coordinator = CheckoutCoordinator(ledger, cart_store, orders, notifications)
    await ledger.upsert("p1", "M", 1)
    await cart_store.add(make_product("p1"), "M", "black")

    with pytest.raises(RuntimeError):
        await coordinator.place_order(make_shipping())

    #zamowienie zapisane, stan zdjety, koszyk wyczyszczony - to nie jest przypadek rekoncyliacji
    assert coordinator.state is CheckoutState.ORDER_CREATED
    assert notifications.reconciliations == []
    assert len(await orders.list_orders("u1")) == 1
    assert await ledger.read("p1", "M") == 0
    assert cart_store.cart.items == []
