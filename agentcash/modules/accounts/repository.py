"""Repository protocol for accounts."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, Sequence

from .models import Account, AgentStatus, Role


class AccountRepository(Protocol):
    """Abstract repository interface for account persistence."""

    async def get_by_id(self, account_id: str) -> Account | None:
        ...

    async def get_by_username(self, username: str) -> Account | None:
        ...

    async def get_by_phone(self, phone: str) -> Account | None:
        ...

    async def get_by_unique_id(self, unique_id: str) -> Account | None:
        ...

    async def search_agents(self, query: str, limit: int) -> Sequence[Account]:
        ...

    async def create_account(
        self,
        *,
        username: str,
        password_hash: str,
        role: Role,
        phone: str | None,
        unique_id: str | None,
        full_name: str | None,
        agent_status: AgentStatus | None,
        is_active: bool,
    ) -> Account:
        ...

    async def set_agent_status(
        self,
        account_id: str,
        status: AgentStatus,
        *,
        expected: AgentStatus | None = None,
    ) -> Account | None:
        ...

    async def set_last_login(self, account_id: str, timestamp: datetime) -> None:
        ...
