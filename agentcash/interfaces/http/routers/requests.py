"""Cash request endpoints: create, list, approve, reject, cancel and code reissue."""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from agentcash.core.container import ApplicationContainer
from agentcash.core.security import get_current_account
from agentcash.interfaces.http.deps import get_app_container, get_lifecycle_service, get_request_registry
from agentcash.modules.accounts import Account as AccountDomain
from agentcash.modules.requests import (
    RequestKind,
    RequestPermissionError,
    RequestRecord,
    RequestStatus,
    RequestView,
)
from agentcash.modules.requests.lifecycle import RequestLifecycleService
from agentcash.modules.requests.service import RequestRegistry
from agentcash.schemas import (
    ApproveRequest,
    CashRequestCreate,
    CashRequestListResponse,
    CashRequestResponse,
    RejectRequest,
)

router = APIRouter()


def request_response(view: RequestView) -> CashRequestResponse:
    return CashRequestResponse.model_validate(view)


def request_list(records: list[RequestRecord]) -> CashRequestListResponse:
    return CashRequestListResponse(
        total=len(records),
        requests=[request_response(RequestView.from_record(record)) for record in records],
    )


@router.post("", response_model=CashRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_request(
    payload: CashRequestCreate,
    account: AccountDomain = Depends(get_current_account),
    lifecycle: RequestLifecycleService = Depends(get_lifecycle_service),
) -> CashRequestResponse:
    """The plaintext confirmation code is only ever returned here and by the reissue endpoint."""
    view = await lifecycle.create(
        requester_id=account.id,
        kind=payload.kind,
        amount=payload.amount,
        counterparty=payload.counterparty,
        message=payload.message,
        details=payload.details,
    )
    return request_response(view)


@router.get("/pending", response_model=CashRequestListResponse, summary="Requests waiting for my approval")
async def list_pending(
    kind: Optional[RequestKind] = None,
    account: AccountDomain = Depends(get_current_account),
    registry: RequestRegistry = Depends(get_request_registry),
    container: ApplicationContainer = Depends(get_app_container),
) -> CashRequestListResponse:
    records = await registry.list_pending_for(account.id, container.clock.now(), kind)
    return request_list(list(records))


@router.get("/history", response_model=CashRequestListResponse)
async def list_history(
    kind: Optional[RequestKind] = None,
    request_status: Optional[RequestStatus] = Query(None, alias="status"),
    include_received: bool = True,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    account: AccountDomain = Depends(get_current_account),
    registry: RequestRegistry = Depends(get_request_registry),
) -> CashRequestListResponse:
    records = await registry.list_for(
        account.id,
        include_received=include_received,
        kind=kind,
        status=request_status,
        limit=limit,
        offset=offset,
    )
    return request_list(list(records))


@router.get("/{reference}", response_model=CashRequestResponse)
async def read_request(
    reference: str,
    account: AccountDomain = Depends(get_current_account),
    registry: RequestRegistry = Depends(get_request_registry),
) -> CashRequestResponse:
    record = await registry.get_by_reference(reference)
    if account.id not in {record.requester_id, record.counterparty_id} and not account.is_admin():
        raise RequestPermissionError(f"Not a party to request {record.reference}")
    return request_response(RequestView.from_record(record))


@router.post("/{request_id}/approve", response_model=CashRequestResponse)
async def approve_request(
    request_id: str,
    payload: ApproveRequest,
    account: AccountDomain = Depends(get_current_account),
    lifecycle: RequestLifecycleService = Depends(get_lifecycle_service),
) -> CashRequestResponse:
    return request_response(await lifecycle.approve(request_id, account.id, payload.code))


@router.post("/{request_id}/reject", response_model=CashRequestResponse)
async def reject_request(
    request_id: str,
    payload: RejectRequest,
    account: AccountDomain = Depends(get_current_account),
    lifecycle: RequestLifecycleService = Depends(get_lifecycle_service),
) -> CashRequestResponse:
    return request_response(await lifecycle.reject(request_id, account.id, payload.note))


@router.post("/{request_id}/cancel", response_model=CashRequestResponse)
async def cancel_request(
    request_id: str,
    account: AccountDomain = Depends(get_current_account),
    lifecycle: RequestLifecycleService = Depends(get_lifecycle_service),
) -> CashRequestResponse:
    return request_response(await lifecycle.cancel(request_id, account.id))


@router.post("/{request_id}/code", response_model=CashRequestResponse, summary="Issue a new confirmation code")
async def reissue_code(
    request_id: str,
    account: AccountDomain = Depends(get_current_account),
    lifecycle: RequestLifecycleService = Depends(get_lifecycle_service),
) -> CashRequestResponse:
    return request_response(await lifecycle.reissue_code(request_id, account.id))
