"""Administrative endpoints: request oversight, manual expiry sweep, agent status."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from agentcash.core.container import ApplicationContainer
from agentcash.core.security import get_current_admin
from agentcash.interfaces.http.deps import get_account_service, get_app_container, get_request_registry
from agentcash.interfaces.http.routers.accounts import account_response
from agentcash.interfaces.http.routers.requests import request_list
from agentcash.modules.accounts import Account as AccountDomain
from agentcash.modules.accounts import AccountNotFoundError, AccountService, AgentStatus
from agentcash.modules.requests import RequestKind, RequestStatus
from agentcash.modules.requests.service import RequestRegistry
from agentcash.schemas import AccountResponse, AgentStatusUpdate, CashRequestListResponse, SweepResponse

router = APIRouter()


@router.get("/requests", response_model=CashRequestListResponse)
async def list_requests(
    kind: Optional[RequestKind] = None,
    request_status: Optional[RequestStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: AccountDomain = Depends(get_current_admin),
    registry: RequestRegistry = Depends(get_request_registry),
) -> CashRequestListResponse:
    records = await registry.list_all(kind=kind, status=request_status, limit=limit, offset=offset)
    return request_list(list(records))


@router.post("/expiry/sweep", response_model=SweepResponse, summary="Run one expiry sweep now")
async def sweep_expired(
    admin: AccountDomain = Depends(get_current_admin),
    container: ApplicationContainer = Depends(get_app_container),
) -> SweepResponse:
    expired = await container.build_sweeper().run_once()
    return SweepResponse(expired=expired)


@router.post("/accounts/{account_id}/status", response_model=AccountResponse)
async def set_agent_status(
    account_id: str,
    payload: AgentStatusUpdate,
    admin: AccountDomain = Depends(get_current_admin),
    account_service: AccountService = Depends(get_account_service),
) -> AccountResponse:
    account = await account_service.get_by_id(account_id)
    if account is None:
        raise AccountNotFoundError(f"Account not found: {account_id}")
    if not account.is_agent():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only agent accounts carry a status")
    updated = await account_service.set_agent_status(account_id, AgentStatus(payload.status))
    return account_response(updated)
