"""Registration and login endpoints."""
from fastapi import APIRouter, Depends, HTTPException, status

from agentcash.core.container import ApplicationContainer
from agentcash.core.security import create_access_token
from agentcash.interfaces.http.deps import get_account_service, get_app_container
from agentcash.modules.accounts import AccountCreateInput, AccountService, Role
from agentcash.schemas import AccountCreate, AccountLoginResponse, LoginRequest

router = APIRouter()


@router.post(
    "/register",
    response_model=AccountLoginResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a client or agent account",
)
async def register(
    payload: AccountCreate,
    account_service: AccountService = Depends(get_account_service),
    container: ApplicationContainer = Depends(get_app_container),
) -> AccountLoginResponse:
    # AccountAlreadyExistsError is mapped to 409 by the exception handlers.
    account = await account_service.create_account(
        AccountCreateInput(
            username=payload.username,
            password=payload.password,
            role=Role(payload.role),
            phone=payload.phone,
            full_name=payload.full_name,
        )
    )
    access_token = create_access_token(container.settings, account.id, account.username, account.role.value)
    return AccountLoginResponse(
        access_token=access_token,
        account_id=account.id,
        username=account.username,
        role=account.role.value,
    )


@router.post("/login", response_model=AccountLoginResponse, summary="Log in with username or phone number")
async def login(
    payload: LoginRequest,
    account_service: AccountService = Depends(get_account_service),
    container: ApplicationContainer = Depends(get_app_container),
) -> AccountLoginResponse:
    account = await account_service.authenticate(payload.username, payload.password)
    if not account:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid username or password")

    await account_service.set_last_login(account.id)

    access_token = create_access_token(container.settings, account.id, account.username, account.role.value)
    return AccountLoginResponse(
        access_token=access_token,
        account_id=account.id,
        username=account.username,
        role=account.role.value,
    )
