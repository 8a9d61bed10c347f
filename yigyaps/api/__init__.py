from fastapi import APIRouter

from yigyaps.api.admin import router as admin_router
from yigyaps.api.api_keys import router as api_keys_router
from yigyaps.api.auth import router as auth_router
from yigyaps.api.installations import router as installations_router
from yigyaps.api.ledger import mints_router, royalties_router
from yigyaps.api.packages import router as packages_router
from yigyaps.api.registry import health_router, well_known_router
from yigyaps.api.reviews import router as reviews_router
from yigyaps.api.users import router as users_router

api_router = APIRouter(prefix="/v1")
api_router.include_router(health_router)
api_router.include_router(auth_router)
api_router.include_router(users_router)
api_router.include_router(api_keys_router)
api_router.include_router(packages_router)
api_router.include_router(reviews_router)
api_router.include_router(installations_router)
api_router.include_router(mints_router)
api_router.include_router(royalties_router)
api_router.include_router(admin_router)

__all__ = ["api_router", "well_known_router"]
