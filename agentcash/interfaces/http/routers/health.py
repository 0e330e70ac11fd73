"""Liveness probe."""
from fastapi import APIRouter

from agentcash import __version__

router = APIRouter()


@router.get("/health", tags=["health"])
async def health() -> dict:
    return {"status": "ok", "version": __version__}
