# storefront/main.py
from contextlib import asynccontextmanager

import redis.asyncio as redis
import uvicorn
from fastapi import FastAPI

from storefront.api import ROUTERS
from storefront.data.database import create_engine, create_session_factory, init_models
from storefront.data.store import DocumentStore, create_redis
from storefront.repos.cart_mirror import CartMirror
from storefront.repos.cart_repo import CartRepo
from storefront.repos.counter_repo import CounterRepo
from storefront.services.availability_cache import AvailabilityCache
from storefront.services.cart_store import CartSessions
from storefront.services.notification_service import NotificationService
from storefront.services.stock_ledger import StockLedger
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def create_app(
    redis_client: redis.Redis | None = None,
    database_url: str | None = None,
    mirror_dir: str | None = None,
    ledger_options: dict | None = None,
) -> FastAPI:

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = redis_client or create_redis()
        engine = create_engine(database_url)

        logger.info("Initializing order database")
        await init_models(engine)

        store = DocumentStore(client)
        ledger = StockLedger(store, **(ledger_options or {}))

        app.state.store = store
        app.state.ledger = ledger
        #jedna instancja cache na proces, wstrzykiwana do routow
        app.state.availability = AvailabilityCache(ledger)
        app.state.carts = CartSessions(CartRepo(store), CartMirror(mirror_dir))
        app.state.counters = CounterRepo(store)
        app.state.session_factory = create_session_factory(engine)
        app.state.notifications = NotificationService()

        try:
            yield
        finally:
            await engine.dispose()
            if redis_client is None:
                await client.aclose()

    app = FastAPI(
        title="Storefront Inventory & Cart",
        version="1.0.0",
        lifespan=lifespan,
    )

    for router in ROUTERS:
        app.include_router(router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
