"""Domain models for accounts."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class Role(str, Enum):
    CLIENT = "client"
    AGENT = "agent"
    ADMIN = "admin"


class AgentStatus(str, Enum):
    PENDING_FLOAT = "PENDING_FLOAT"
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"


@dataclass(slots=True)
class Account:
    id: str
    username: str
    role: Role
    is_active: bool
    password_hash: str = field(repr=False)
    phone: Optional[str] = None
    unique_id: Optional[str] = None
    full_name: Optional[str] = None
    agent_status: Optional[AgentStatus] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    def is_agent(self) -> bool:
        return self.role is Role.AGENT

    def to_party(self) -> "Party":
        return Party(
            account_id=self.id,
            role=self.role,
            is_active=self.is_active,
            agent_status=self.agent_status,
            full_name=self.full_name or self.username,
            phone=self.phone,
            unique_id=self.unique_id,
        )


@dataclass(slots=True, frozen=True)
class Party:
    """What the request protocol needs to know about a participant."""

    account_id: str
    role: Role
    is_active: bool
    agent_status: Optional[AgentStatus] = None
    full_name: Optional[str] = None
    phone: Optional[str] = None
    unique_id: Optional[str] = None

    @property
    def is_operational_agent(self) -> bool:
        return self.role is Role.AGENT and self.is_active and self.agent_status is AgentStatus.ACTIVE

    @property
    def awaiting_activation(self) -> bool:
        return self.role is Role.AGENT and self.agent_status is AgentStatus.PENDING_FLOAT


@dataclass(slots=True)
class AccountCreateInput:
    username: str
    password: str
    role: Role = Role.CLIENT
    phone: Optional[str] = None
    full_name: Optional[str] = None
    is_active: bool = True


__all__ = ["Account", "AccountCreateInput", "AgentStatus", "Party", "Role"]
