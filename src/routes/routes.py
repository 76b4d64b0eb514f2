from fastapi import APIRouter, HTTPException

from core.redis import redis
from core.db import client
from routes.auth import router as auth_router
from routes.registrations import router as registrations_router
from routes.admin import router as admin_router
from routes.emails import router as emails_router
from routes.sync import router as sync_router


router = APIRouter()


@router.get("/alive")
async def alive():
    return "Alive"


@router.get("/health")
async def health():
    try:
        await redis.ping()
        await client.admin.command("ping")
    except Exception as e:
        raise HTTPException(503, f"Dependency unavailable: {e}")
    return {"status": "ok"}


router.include_router(auth_router)
router.include_router(registrations_router)
router.include_router(admin_router)
router.include_router(emails_router)
router.include_router(sync_router)
