import fakeredis
import fakeredis.aioredis
import pytest

from storefront.celery_worker import celery_app
from storefront.data.database import create_engine, create_session_factory, init_models
from storefront.data.store import DocumentStore
from storefront.repos.cart_mirror import CartMirror
from storefront.repos.cart_repo import CartRepo
from storefront.repos.counter_repo import CounterRepo
from storefront.services.stock_ledger import StockLedger
from tests.helpers import FlakyStore, RecordingNotifications


@pytest.fixture(autouse=True)
def eager_celery():
    celery_app.conf.task_always_eager = True
    yield
    celery_app.conf.task_always_eager = False


@pytest.fixture
def server():
    return fakeredis.FakeServer()


@pytest.fixture
def redis_client(server):
    return fakeredis.aioredis.FakeRedis(server=server, decode_responses=True)


@pytest.fixture
def store(redis_client):
    return DocumentStore(redis_client)


@pytest.fixture
def ledger(store):
    return StockLedger(store, max_attempts=3, backoff_min=0, backoff_max=0)


@pytest.fixture
def flaky_store(redis_client):
    return FlakyStore(redis_client)


@pytest.fixture
def cart_repo(flaky_store):
    return CartRepo(flaky_store)


@pytest.fixture
def mirror(tmp_path):
    return CartMirror(tmp_path / "mirror")


@pytest.fixture
async def engine(tmp_path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'orders.db'}")
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(engine):
    async with create_session_factory(engine)() as session:
        yield session


@pytest.fixture
def counters(store):
    return CounterRepo(store, attempts=3, min_wait=0, max_wait=0)


@pytest.fixture
def notifications():
    return RecordingNotifications()
