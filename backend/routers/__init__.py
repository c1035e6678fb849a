from routers.auth import router as auth_router
from routers.users import router as users_router
from routers.stages import router as stages_router
from routers.orders import router as orders_router
from routers.production import router as production_router
from routers.machines import router as machines_router
from routers.shopify import router as shopify_router
from routers.webhooks import router as webhooks_router
from routers.products import router as products_router
from routers.reports import router as reports_router

__all__ = [
    "auth_router",
    "users_router",
    "stages_router",
    "orders_router",
    "production_router",
    "machines_router",
    "shopify_router",
    "webhooks_router",
    "products_router",
    "reports_router"
]
