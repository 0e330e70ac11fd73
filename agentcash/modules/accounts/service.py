"""Domain services for account management and party lookup."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone
from typing import Protocol, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from agentcash.core.crypto import hash_password, verify_password

from .exceptions import AccountAlreadyExistsError, AccountNotFoundError
from .models import Account, AccountCreateInput, AgentStatus, Party, Role
from .repository import AccountRepository

logger = logging.getLogger(__name__)

UNIQUE_ID_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"


class AccountDirectory(Protocol):
    """Identity/role lookups consumed by the request protocol."""

    async def get_party(self, account_id: str) -> Party | None:
        ...

    async def resolve(self, identifier: str) -> Party | None:
        ...

    async def activate_agent(self, account_id: str) -> bool:
        ...


class AccountService:
    """Encapsulates core account use cases."""

    def __init__(self, repository: AccountRepository) -> None:
        self._repository = repository

    @classmethod
    def with_session(cls, session: AsyncSession) -> "AccountService":
        # Deferred: the SQL repository imports this package's models.
        from agentcash.infrastructure.database.repositories.account_repository import SqlAccountRepository

        return cls(SqlAccountRepository(session))

    async def get_by_id(self, account_id: str) -> Account | None:
        return await self._repository.get_by_id(account_id)

    async def authenticate(self, username: str, password: str) -> Account | None:
        account = await self._repository.get_by_username(username)
        if account is None:
            account = await self._repository.get_by_phone(username)
        if account is None or not account.is_active:
            return None
        if not verify_password(password, account.password_hash):
            return None
        return account

    async def create_account(self, payload: AccountCreateInput) -> Account:
        if await self._repository.get_by_username(payload.username) is not None:
            raise AccountAlreadyExistsError("username", payload.username)
        if payload.phone and await self._repository.get_by_phone(payload.phone) is not None:
            raise AccountAlreadyExistsError("phone", payload.phone)

        unique_id = None
        agent_status = None
        if payload.role is Role.AGENT:
            unique_id = await self._new_unique_id()
            agent_status = AgentStatus.PENDING_FLOAT

        account = await self._repository.create_account(
            username=payload.username,
            password_hash=hash_password(payload.password),
            role=payload.role,
            phone=payload.phone,
            unique_id=unique_id,
            full_name=payload.full_name,
            agent_status=agent_status,
            is_active=payload.is_active,
        )
        logger.info("Created %s account %s", account.role.value, account.id)
        return account

    async def set_last_login(self, account_id: str) -> None:
        await self._repository.set_last_login(account_id, datetime.now(timezone.utc))

    async def set_agent_status(self, account_id: str, status: AgentStatus) -> Account:
        account = await self._repository.set_agent_status(account_id, status)
        if account is None:
            raise AccountNotFoundError(account_id)
        logger.info("Agent %s status set to %s", account_id, status.value)
        return account

    async def search_agents(self, query: str, limit: int = 10) -> Sequence[Party]:
        accounts = await self._repository.search_agents(query.strip(), limit)
        return [account.to_party() for account in accounts]

    # AccountDirectory

    async def get_party(self, account_id: str) -> Party | None:
        account = await self._repository.get_by_id(account_id)
        return account.to_party() if account else None

    async def resolve(self, identifier: str) -> Party | None:
        """Find a party by account id, phone number or public unique id."""
        identifier = identifier.strip()
        account = (
            await self._repository.get_by_id(identifier)
            or await self._repository.get_by_phone(identifier)
            or await self._repository.get_by_unique_id(identifier.upper())
        )
        return account.to_party() if account else None

    async def activate_agent(self, account_id: str) -> bool:
        account = await self._repository.set_agent_status(
            account_id,
            AgentStatus.ACTIVE,
            expected=AgentStatus.PENDING_FLOAT,
        )
        if account is not None:
            logger.info("Agent %s activated after first float deposit", account_id)
        return account is not None

    async def _new_unique_id(self) -> str:
        while True:
            candidate = "AG" + "".join(secrets.choice(UNIQUE_ID_ALPHABET) for _ in range(6))
            if await self._repository.get_by_unique_id(candidate) is None:
                return candidate


__all__ = ["AccountDirectory", "AccountService"]
