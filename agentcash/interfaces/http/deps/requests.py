"""Request protocol dependency providers."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from agentcash.core.container import ApplicationContainer
from agentcash.infrastructure.database.repositories.ledger_repository import SqlLedger
from agentcash.modules.requests.lifecycle import RequestLifecycleService
from agentcash.modules.requests.service import RequestRegistry

from .database import get_app_container, get_db_session


def get_lifecycle_service(
    db: AsyncSession = Depends(get_db_session),
    container: ApplicationContainer = Depends(get_app_container),
) -> RequestLifecycleService:
    return container.lifecycle(db)


def get_request_registry(
    db: AsyncSession = Depends(get_db_session),
    container: ApplicationContainer = Depends(get_app_container),
) -> RequestRegistry:
    return RequestRegistry.with_session(db, container.settings)


def get_ledger(
    db: AsyncSession = Depends(get_db_session),
    container: ApplicationContainer = Depends(get_app_container),
) -> SqlLedger:
    return SqlLedger(db, container.settings.ledger, container.clock)


__all__ = [
    "get_ledger",
    "get_lifecycle_service",
    "get_request_registry",
]
