from fastapi import APIRouter

from .endpoints import gifts, health, members, observability, users

router = APIRouter()

router.include_router(health.router)
router.include_router(gifts.router)
router.include_router(users.router)
router.include_router(members.router)
router.include_router(observability.router)
