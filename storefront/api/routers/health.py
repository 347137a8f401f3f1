# storefront/api/routers/health.py
from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request):
    store_ok = await request.app.state.store.ping()
    return {"status": "ok" if store_ok else "degraded", "store": store_ok}
