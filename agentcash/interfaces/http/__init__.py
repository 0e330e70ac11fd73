from fastapi import APIRouter

from agentcash.interfaces.http.routers import accounts, admin, auth, health, requests


def create_api_router(prefix: str = "") -> APIRouter:
    router = APIRouter(prefix=prefix)
    router.include_router(auth.router, prefix="/auth", tags=["auth"])
    router.include_router(accounts.router, prefix="/accounts", tags=["accounts"])
    router.include_router(requests.router, prefix="/requests", tags=["requests"])
    router.include_router(admin.router, prefix="/admin", tags=["admin"])
    return router


__all__ = [
    "create_api_router",
    "health",
]
