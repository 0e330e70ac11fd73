"""Endpoints for the signed-in account: profile, balances and agent lookup."""
from fastapi import APIRouter, Depends, Query

from agentcash.core.security import get_current_account
from agentcash.infrastructure.database.repositories.ledger_repository import SqlLedger
from agentcash.interfaces.http.deps import get_account_service, get_ledger
from agentcash.modules.accounts import Account as AccountDomain
from agentcash.modules.accounts import AccountService, Party
from agentcash.schemas import AccountResponse, BalanceListResponse, BalanceResponse, PartyResponse

router = APIRouter()


def account_response(account: AccountDomain) -> AccountResponse:
    return AccountResponse(
        id=account.id,
        username=account.username,
        role=account.role.value,
        is_active=account.is_active,
        phone=account.phone,
        unique_id=account.unique_id,
        full_name=account.full_name,
        agent_status=account.agent_status.value if account.agent_status else None,
        created_at=account.created_at,
        last_login_at=account.last_login_at,
    )


def party_response(party: Party) -> PartyResponse:
    return PartyResponse(
        account_id=party.account_id,
        role=party.role.value,
        full_name=party.full_name,
        phone=party.phone,
        unique_id=party.unique_id,
        agent_status=party.agent_status.value if party.agent_status else None,
    )


@router.get("/me", response_model=AccountResponse)
async def read_me(account: AccountDomain = Depends(get_current_account)) -> AccountResponse:
    return account_response(account)


@router.get("/balance", response_model=BalanceListResponse)
async def read_balance(
    account: AccountDomain = Depends(get_current_account),
    ledger: SqlLedger = Depends(get_ledger),
) -> BalanceListResponse:
    snapshots = await ledger.balances(account.id)
    return BalanceListResponse(
        owner_id=account.id,
        balances=[
            BalanceResponse(book=snapshot.book.value, balance=snapshot.balance, currency=snapshot.currency)
            for snapshot in snapshots
        ],
    )


@router.get("/lookup", response_model=list[PartyResponse], summary="Find an agent by code, phone or name")
async def lookup_agents(
    query: str = Query(..., min_length=2, max_length=64),
    account: AccountDomain = Depends(get_current_account),
    account_service: AccountService = Depends(get_account_service),
) -> list[PartyResponse]:
    parties = list(await account_service.search_agents(query))
    exact = await account_service.resolve(query)
    if exact is not None and all(party.account_id != exact.account_id for party in parties):
        parties.insert(0, exact)
    return [party_response(party) for party in parties if party.account_id != account.id]
