"""SQLAlchemy implementation of the account repository."""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from agentcash.db.models import Account as AccountModel
from agentcash.modules.accounts.models import Account, AgentStatus, Role
from agentcash.modules.accounts.repository import AccountRepository


class SqlAccountRepository(AccountRepository):
    """Account repository backed by SQLAlchemy models."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, account_id: str) -> Account | None:
        return await self._first(AccountModel.id == account_id)

    async def get_by_username(self, username: str) -> Account | None:
        return await self._first(AccountModel.username == username)

    async def get_by_phone(self, phone: str) -> Account | None:
        return await self._first(AccountModel.phone == phone)

    async def get_by_unique_id(self, unique_id: str) -> Account | None:
        return await self._first(AccountModel.unique_id == unique_id)

    async def search_agents(self, query: str, limit: int) -> Sequence[Account]:
        pattern = f"%{query}%"
        stmt = (
            select(AccountModel)
            .where(AccountModel.role == Role.AGENT.value)
            .where(AccountModel.is_active.is_(True))
            .where(
                or_(
                    AccountModel.full_name.ilike(pattern),
                    AccountModel.phone.ilike(pattern),
                    AccountModel.unique_id.ilike(pattern),
                )
            )
            .order_by(AccountModel.full_name)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [self._to_domain(model) for model in result.scalars().all()]

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
        model = AccountModel(
            username=username,
            password_hash=password_hash,
            role=role.value,
            phone=phone,
            unique_id=unique_id,
            full_name=full_name,
            agent_status=agent_status.value if agent_status else None,
            is_active=is_active,
        )
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_domain(model)

    async def set_agent_status(
        self,
        account_id: str,
        status: AgentStatus,
        *,
        expected: AgentStatus | None = None,
    ) -> Account | None:
        stmt = (
            update(AccountModel)
            .where(AccountModel.id == account_id)
            .where(AccountModel.role == Role.AGENT.value)
        )
        if expected is not None:
            stmt = stmt.where(AccountModel.agent_status == expected.value)
        stmt = (
            stmt.values(agent_status=status.value)
            .execution_options(synchronize_session="fetch", populate_existing=True)
            .returning(AccountModel)
        )
        result = await self._session.execute(stmt)
        model = result.scalars().first()
        return self._to_domain(model) if model is not None else None

    async def set_last_login(self, account_id: str, timestamp: datetime) -> None:
        stmt = (
            update(AccountModel)
            .where(AccountModel.id == account_id)
            .values(last_login_at=timestamp)
        )
        await self._session.execute(stmt)

    async def _first(self, criterion) -> Account | None:
        stmt = select(AccountModel).where(criterion).execution_options(populate_existing=True)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model is not None else None

    @staticmethod
    def _to_domain(model: AccountModel) -> Account:
        return Account(
            id=str(model.id),
            username=model.username,
            role=Role(model.role or Role.CLIENT.value),
            is_active=bool(model.is_active),
            password_hash=model.password_hash,
            phone=model.phone,
            unique_id=model.unique_id,
            full_name=model.full_name,
            agent_status=AgentStatus(model.agent_status) if model.agent_status else None,
            created_at=model.created_at,
            updated_at=model.updated_at,
            last_login_at=model.last_login_at,
        )
