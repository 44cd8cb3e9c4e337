"""API layer module.

Contains FastAPI routers and request/response schemas.
"""

from variantsync.api.codes import router as codes_router
from variantsync.api.health import router as health_router
from variantsync.api.orders import router as orders_router
from variantsync.api.variants import router as variants_router

__all__ = [
    "codes_router",
    "health_router",
    "orders_router",
    "variants_router",
]
