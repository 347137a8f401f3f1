# storefront/api/__init__.py
from storefront.api.routers import availability, carts, health, inventory, orders

ROUTERS = (
    health.router,
    availability.router,
    inventory.router,
    carts.router,
    orders.router,
)
