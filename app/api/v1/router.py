from fastapi import APIRouter

from app.api.v1.endpoints.health import router as health_router
from app.api.v1.endpoints.colleges import router as colleges_router
from app.api.v1.endpoints.drafts import router as drafts_router
from app.api.v1.endpoints.payments import router as payments_router
from app.api.v1.endpoints.webhooks import router as webhooks_router
from app.api.v1.endpoints.listings import router as listings_router
from app.api.v1.endpoints.internal import router as internal_router


router = APIRouter(prefix="/v1")
router.include_router(health_router, tags=["health"])
router.include_router(colleges_router, tags=["colleges"])
router.include_router(drafts_router, tags=["drafts"])
router.include_router(payments_router, tags=["payments"])
router.include_router(webhooks_router, tags=["webhooks"])
router.include_router(listings_router, tags=["listings"])
router.include_router(internal_router, tags=["internal"])
