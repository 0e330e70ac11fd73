"""Reusable FastAPI dependencies."""

from .database import get_app_container, get_db_session
from .account import get_account_repository, get_account_service
from .requests import get_ledger, get_lifecycle_service, get_request_registry

__all__ = [
    "get_app_container",
    "get_db_session",
    "get_account_repository",
    "get_account_service",
    "get_ledger",
    "get_lifecycle_service",
    "get_request_registry",
]
