"""Pydantic schemas used across the project."""
from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from agentcash.modules.requests import RequestKind, RequestStatus


class LoginRequest(BaseModel):
    # username or phone number
    username: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., min_length=6)


class TokenData(BaseModel):
    account_id: str
    username: str
    role: str


class AccountLoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    account_id: str
    username: str
    role: str


class AccountCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., min_length=6)
    phone: Optional[str] = Field(None, max_length=32)
    full_name: Optional[str] = Field(None, max_length=120)
    role: Literal["client", "agent"] = "client"


class AccountResponse(BaseModel):
    id: str
    username: str
    role: str
    is_active: bool
    phone: Optional[str] = None
    unique_id: Optional[str] = None
    full_name: Optional[str] = None
    agent_status: Optional[str] = None
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PartyResponse(BaseModel):
    account_id: str
    role: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
    unique_id: Optional[str] = None
    agent_status: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class BalanceResponse(BaseModel):
    book: str
    balance: int
    currency: str

    model_config = ConfigDict(from_attributes=True)


class BalanceListResponse(BaseModel):
    owner_id: str
    balances: list[BalanceResponse]


class AgentStatusUpdate(BaseModel):
    status: Literal["ACTIVE", "SUSPENDED"]


class CashRequestCreate(BaseModel):
    kind: RequestKind
    # account id, phone number or agent code; omitted for cancellations
    counterparty: Optional[str] = Field(None, max_length=64)
    amount: Optional[int] = Field(None, gt=0)
    message: Optional[str] = Field(None, max_length=255)
    details: dict[str, Any] = Field(default_factory=dict)


class ApproveRequest(BaseModel):
    code: Optional[str] = Field(None, max_length=16)


class RejectRequest(BaseModel):
    note: Optional[str] = Field(None, max_length=255)


class CashRequestResponse(BaseModel):
    id: str
    reference: str
    kind: RequestKind
    amount: int
    fee: int
    status: RequestStatus
    requester_id: str
    counterparty_id: str
    message: Optional[str] = None
    response_note: Optional[str] = None
    created_at: datetime
    expires_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None
    details: dict[str, Any] = Field(default_factory=dict)
    confirmation_code: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class CashRequestListResponse(BaseModel):
    total: int
    requests: list[CashRequestResponse]


class SweepResponse(BaseModel):
    expired: list[str]


__all__ = [
    "AccountCreate",
    "AccountLoginResponse",
    "AccountResponse",
    "AgentStatusUpdate",
    "ApproveRequest",
    "BalanceListResponse",
    "BalanceResponse",
    "CashRequestCreate",
    "CashRequestListResponse",
    "CashRequestResponse",
    "LoginRequest",
    "PartyResponse",
    "RejectRequest",
    "SweepResponse",
    "TokenData",
]
