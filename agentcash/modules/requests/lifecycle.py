"""Request lifecycle orchestration.

``PENDING`` is the only non-terminal state. Every transition out of it goes
through :meth:`RequestRegistry.update_status`, a conditional UPDATE, so two
concurrent callers can never both move the same request. Approval couples that
UPDATE with the ledger transfer in a single database transaction: either both
commit or the request is left untouched in ``PENDING``.

That transaction holds the database write lock while the ledger runs, for up
to ``requests.ledger_timeout_seconds``. On SQLite, ``database.busy_timeout``
must stay above that timeout or concurrent writers fail with "database is
locked" instead of waiting.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Mapping, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from agentcash.core.clock import Clock, SystemClock
from agentcash.core.codes import ConfirmationVerifier, IssuedCode
from agentcash.core.config import Settings, get_settings
from agentcash.core.events import (
    ConfirmationCodeReissued,
    EventBus,
    RequestApproved,
    RequestCancelled,
    RequestCreated,
    RequestEvent,
    RequestExpired,
    RequestRejected,
)
from agentcash.infrastructure.database.repositories.ledger_repository import SqlLedger
from agentcash.modules.accounts import AccountDirectory, AccountService, Party, Role
from agentcash.modules.fees import FeePolicy, FeeRuleNotFound
from agentcash.modules.ledger import DuplicateTransferError, Ledger, LedgerBook, LedgerError, Leg

from .details import (
    CancellationDetails,
    FloatDetails,
    FloatDirection,
    dump_details,
    parse_details,
)
from .exceptions import (
    InvalidConfirmationCodeError,
    LedgerFailureError,
    RequestConflictError,
    RequestExpiredError,
    RequestPermissionError,
    RequestValidationError,
)
from .models import NewRequest, RequestKind, RequestRecord, RequestStatus, RequestView
from .repository import PendingKeyTakenError
from .service import RequestRegistry

logger = logging.getLogger(__name__)

# Kinds the requester may withdraw while they are still pending.
CANCELLABLE_KINDS = {RequestKind.WITHDRAWAL, RequestKind.FLOAT}


@dataclass(slots=True, frozen=True)
class TransferPlan:
    legs: Sequence[Leg]
    payer_id: str
    payee_id: str
    reverses: Optional[str] = None


def needs_confirmation_code(kind: RequestKind, details: Mapping[str, Any]) -> bool:
    """Cash physically changes hands for withdrawals and float cash-outs."""
    if kind is RequestKind.WITHDRAWAL:
        return True
    if kind is RequestKind.FLOAT:
        return details.get("direction") == FloatDirection.CASH_OUT.value
    return False


def pending_key_for(
    kind: RequestKind,
    requester_id: str,
    details: Mapping[str, Any],
    source_reference: Optional[str],
) -> Optional[str]:
    """Key that at most one PENDING request may hold at a time."""
    if kind is RequestKind.CANCELLATION:
        return f"CANCEL:{source_reference}"
    if kind is RequestKind.FLOAT and details.get("direction") == FloatDirection.TOP_UP.value:
        return f"TOP_UP:{requester_id}"
    return None


def plan_transfer(request: RequestRecord, platform_owner_id: str, reverses: Optional[str] = None) -> TransferPlan:
    """Ledger legs for an approved request. The requester always bears the fee."""
    requester = request.requester_id
    counterparty = request.counterparty_id
    amount = request.amount
    fee = request.fee

    # The platform itself stands behind an admin counterparty.
    if request.counterparty_role == Role.ADMIN.value:
        provider_owner, provider_book = platform_owner_id, LedgerBook.TREASURY
    else:
        provider_owner, provider_book = counterparty, LedgerBook.FLOAT

    if request.kind is RequestKind.WITHDRAWAL:
        legs = [
            Leg.debit(requester, LedgerBook.WALLET, amount + fee),
            Leg.credit(counterparty, LedgerBook.FLOAT, amount),
        ]
        payer, payee = requester, counterparty
    elif request.kind is RequestKind.FLOAT:
        direction = request.details.get("direction", FloatDirection.TOP_UP.value)
        if direction == FloatDirection.CASH_OUT.value:
            legs = [
                Leg.debit(requester, LedgerBook.FLOAT, amount + fee),
                Leg.credit(provider_owner, provider_book, amount),
            ]
            payer, payee = requester, counterparty
        else:
            legs = [Leg.debit(provider_owner, provider_book, amount)]
            if amount - fee > 0:
                legs.append(Leg.credit(requester, LedgerBook.FLOAT, amount - fee))
            payer, payee = counterparty, requester
    else:
        legs = [Leg.debit(counterparty, LedgerBook.FLOAT, amount)]
        if amount - fee > 0:
            legs.append(Leg.credit(requester, LedgerBook.WALLET, amount - fee))
        payer, payee = counterparty, requester

    if request.platform_fee:
        legs.append(Leg.credit(platform_owner_id, LedgerBook.REVENUE, request.platform_fee))
    if request.counterparty_fee:
        legs.append(Leg.credit(counterparty, LedgerBook.COMMISSION, request.counterparty_fee))
    return TransferPlan(legs=legs, payer_id=payer, payee_id=payee, reverses=reverses)


class RequestLifecycleService:
    """Creates requests and drives them to a terminal state."""

    def __init__(
        self,
        session: AsyncSession,
        registry: RequestRegistry,
        ledger: Ledger,
        directory: AccountDirectory,
        fees: FeePolicy,
        verifier: ConfirmationVerifier,
        clock: Clock,
        events: EventBus,
        settings: Settings,
    ) -> None:
        self.session = session
        self.registry = registry
        self.ledger = ledger
        self.directory = directory
        self.fees = fees
        self.verifier = verifier
        self.clock = clock
        self.events = events
        self.settings = settings

    @classmethod
    def with_session(
        cls,
        session: AsyncSession,
        settings: Settings | None = None,
        *,
        clock: Clock | None = None,
        events: EventBus | None = None,
        ledger: Ledger | None = None,
    ) -> "RequestLifecycleService":
        settings = settings or get_settings()
        clock = clock or SystemClock()
        return cls(
            session=session,
            registry=RequestRegistry.with_session(session, settings),
            ledger=ledger or SqlLedger(session, settings.ledger, clock),
            directory=AccountService.with_session(session),
            fees=FeePolicy.from_settings(settings.fees),
            verifier=ConfirmationVerifier(settings.requests.confirmation_hash_rounds),
            clock=clock,
            events=events or EventBus(),
            settings=settings,
        )

    # ------------------------------------------------------------------ create

    async def create(
        self,
        *,
        requester_id: str,
        kind: RequestKind,
        amount: Optional[int] = None,
        counterparty: Optional[str] = None,
        message: Optional[str] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> RequestView:
        """Validate and persist a PENDING request.

        ``counterparty`` is an account id, phone number or agent unique id. For
        CANCELLATION it is derived from the original transfer instead. The
        returned view carries the plaintext confirmation code, which is not
        stored anywhere.
        """
        now = self.clock.now()
        parsed = parse_details(kind, details)

        requester = await self.directory.get_party(requester_id)
        if requester is None or not requester.is_active:
            raise RequestValidationError("Requester account is not active")

        source_reference = None
        if isinstance(parsed, CancellationDetails):
            party, amount, source_reference = await self._validate_cancellation(requester, parsed, amount, now)
        else:
            party = await self._resolve_counterparty(counterparty)
            if party.account_id == requester.account_id:
                raise RequestValidationError("Requester and counterparty must be different accounts")
            if amount is None or isinstance(amount, bool) or amount <= 0:
                raise RequestValidationError("Amount must be a positive integer")
            if isinstance(parsed, FloatDetails):
                await self._validate_float(requester, party, parsed, amount)
            else:
                await self._validate_withdrawal(requester, party, amount)

        try:
            quote = self.fees.compute(kind, party.role, amount)
        except FeeRuleNotFound as exc:
            raise RequestValidationError(str(exc)) from exc

        detail_values = dump_details(parsed)
        await self._check_funds(kind, detail_values, requester, party, amount, quote.fee)

        issued: Optional[IssuedCode] = None
        if needs_confirmation_code(kind, detail_values):
            issued = self.verifier.issue()

        ttl = self._ttl(kind)
        # Reads are done; the insert opens its own write transaction.
        await self.session.commit()
        try:
            record = await self.registry.create(
                NewRequest(
                    kind=kind,
                    requester_id=requester.account_id,
                    counterparty_id=party.account_id,
                    counterparty_role=party.role.value,
                    amount=amount,
                    fee=quote.fee,
                    platform_fee=quote.platform_share,
                    counterparty_fee=quote.counterparty_share,
                    platform_share_bps=quote.platform_share_bps,
                    counterparty_share_bps=quote.counterparty_share_bps,
                    created_at=now,
                    expires_at=now + ttl if ttl is not None else None,
                    confirmation_code_hash=issued.code_hash if issued else None,
                    source_reference=source_reference,
                    details=detail_values,
                    message=message,
                    pending_key=pending_key_for(kind, requester.account_id, detail_values, source_reference),
                )
            )
        except PendingKeyTakenError as exc:
            raise RequestValidationError(
                f"A {kind.value.lower()} request is already pending: {exc.existing_reference}",
                existing_reference=exc.existing_reference,
            ) from exc
        await self.session.commit()

        code = issued.plaintext if issued else None
        await self._publish(RequestCreated, record, code=code)
        return RequestView.from_record(record, confirmation_code=code)

    async def _resolve_counterparty(self, identifier: Optional[str]) -> Party:
        if not identifier or not identifier.strip():
            raise RequestValidationError("A counterparty is required")
        party = await self.directory.resolve(identifier)
        if party is None:
            raise RequestValidationError(f"Unknown counterparty: {identifier}")
        if not party.is_active:
            raise RequestValidationError("Counterparty account is not active")
        return party

    async def _validate_withdrawal(self, requester: Party, party: Party, amount: int) -> None:
        limits = self.settings.requests
        if requester.role is Role.ADMIN:
            raise RequestValidationError("Administrators cannot withdraw cash")
        if not party.is_operational_agent:
            raise RequestValidationError("Withdrawals must be made at an active agent")
        self._check_bounds(amount, limits.withdrawal_min_amount, limits.withdrawal_max_amount)

    async def _validate_float(self, requester: Party, party: Party, details: FloatDetails, amount: int) -> None:
        limits = self.settings.requests
        if requester.role is not Role.AGENT:
            raise RequestValidationError("Only agents can request float")
        if party.role is Role.AGENT:
            if not party.is_operational_agent:
                raise RequestValidationError("The providing agent is not active")
        elif party.role is not Role.ADMIN:
            raise RequestValidationError("Float can only be exchanged with an agent or the platform")

        minimum = limits.float_min_amount
        if requester.awaiting_activation:
            if details.direction is not FloatDirection.TOP_UP:
                raise RequestValidationError("Agents awaiting activation can only top up their float")
            minimum = max(minimum, self.settings.ledger.activation_minimum)
        elif not requester.is_operational_agent:
            raise RequestValidationError("Suspended agents cannot request float")
        self._check_bounds(amount, minimum, limits.float_max_amount)

        if details.direction is FloatDirection.TOP_UP:
            existing = await self.registry.find_pending(
                kind=RequestKind.FLOAT,
                requester_id=requester.account_id,
                direction=FloatDirection.TOP_UP.value,
            )
            if existing is not None:
                raise RequestValidationError(
                    f"A float top-up is already pending: {existing.reference}",
                    existing_reference=existing.reference,
                )

    async def _validate_cancellation(
        self,
        requester: Party,
        details: CancellationDetails,
        amount: Optional[int],
        now: datetime,
    ) -> tuple[Party, int, str]:
        reference = details.transaction_reference.strip().upper()
        original = await self.ledger.get_transfer(reference)
        if original is None:
            raise RequestValidationError(f"Unknown transaction: {reference}")
        if original.kind != RequestKind.WITHDRAWAL.value:
            raise RequestValidationError("Only withdrawals can be cancelled")
        if original.is_reversed:
            raise RequestValidationError(f"Transaction {reference} has already been cancelled")
        if original.payer_id != requester.account_id:
            raise RequestValidationError("Only the paying customer can cancel a transaction")
        window = timedelta(minutes=self.settings.requests.cancellation_window_minutes)
        if now - original.completed_at >= window:
            raise RequestValidationError(
                f"Transactions can only be cancelled within {self.settings.requests.cancellation_window_minutes} minutes"
            )
        if amount is not None and amount != original.principal:
            raise RequestValidationError("Cancellation amount must match the original transaction")

        existing = await self.registry.find_pending(kind=RequestKind.CANCELLATION, source_reference=reference)
        if existing is not None:
            raise RequestValidationError(
                f"A cancellation is already pending: {existing.reference}",
                existing_reference=existing.reference,
            )

        party = await self.directory.get_party(original.payee_id)
        if party is None or not party.is_operational_agent:
            raise RequestValidationError("The agent of the original transaction is not active")
        return party, original.principal, reference

    async def _check_funds(
        self,
        kind: RequestKind,
        details: Mapping[str, Any],
        requester: Party,
        party: Party,
        amount: int,
        fee: int,
    ) -> None:
        floor = self.settings.ledger.float_floor
        if kind is RequestKind.WITHDRAWAL:
            balance = await self.ledger.balance(requester.account_id, LedgerBook.WALLET)
            if balance < amount + fee:
                raise RequestValidationError(f"Insufficient balance: {balance} available, {amount + fee} required")
        elif kind is RequestKind.FLOAT:
            if details.get("direction") == FloatDirection.CASH_OUT.value:
                balance = await self.ledger.balance(requester.account_id, LedgerBook.FLOAT)
                if balance - (amount + fee) < floor:
                    raise RequestValidationError(
                        f"Float would drop below the minimum of {floor} (available {max(balance - floor, 0)})"
                    )
            elif party.role is Role.AGENT:
                balance = await self.ledger.balance(party.account_id, LedgerBook.FLOAT)
                if balance - amount < floor:
                    raise RequestValidationError("The providing agent does not hold enough float")
            if amount - fee <= 0 and details.get("direction") != FloatDirection.CASH_OUT.value:
                raise RequestValidationError("Amount does not cover the fee")
        elif amount - fee <= 0:
            raise RequestValidationError("Amount does not cover the fee")

    @staticmethod
    def _check_bounds(amount: int, minimum: int, maximum: Optional[int]) -> None:
        if amount < minimum:
            raise RequestValidationError(f"Amount must be at least {minimum}")
        if maximum is not None and amount > maximum:
            raise RequestValidationError(f"Amount must not exceed {maximum}")

    def _ttl(self, kind: RequestKind) -> Optional[timedelta]:
        hours = {
            RequestKind.WITHDRAWAL: self.settings.requests.withdrawal_ttl_hours,
            RequestKind.FLOAT: self.settings.requests.float_ttl_hours,
            RequestKind.CANCELLATION: self.settings.requests.cancellation_ttl_hours,
        }[kind]
        return timedelta(hours=hours) if hours is not None else None

    # ------------------------------------------------------------- transitions

    async def approve(self, request_id: str, actor_id: str, code: Optional[str] = None) -> RequestView:
        record = await self._load_pending(request_id, actor_id, counterparty=True)
        actor = await self.directory.get_party(actor_id)
        if actor is None or not actor.is_active:
            raise RequestPermissionError("Counterparty account is not active")
        await self._expire_if_overdue(record)

        if record.requires_code and not self.verifier.verify(record.confirmation_code_hash, code):
            logger.info("Invalid confirmation code for %s", record.reference)
            raise InvalidConfirmationCodeError(f"Invalid confirmation code for {record.reference}")

        reverses = None
        if record.kind is RequestKind.CANCELLATION and record.source_reference:
            original = await self.ledger.get_transfer(record.source_reference)
            if original is not None:
                reverses = original.id
        plan = plan_transfer(record, self.settings.ledger.platform_owner_id, reverses)
        # Reads above ran outside a write transaction; the write starts here.
        await self.session.commit()

        now = self.clock.now()
        try:
            approved = await self.registry.update_status(
                record.id,
                RequestStatus.PENDING,
                RequestStatus.APPROVED,
                require_unconsumed_code=record.requires_code,
                code_consumed_at=now if record.requires_code else None,
                responded_at=now,
                expected_code_hash=record.confirmation_code_hash if record.requires_code else None,
            )
        except (RequestConflictError, InvalidConfirmationCodeError):
            await self.session.rollback()
            raise

        try:
            await asyncio.wait_for(
                self.ledger.transfer(
                    record.id,
                    plan.legs,
                    reference=record.reference,
                    kind=record.kind.value,
                    payer_id=plan.payer_id,
                    payee_id=plan.payee_id,
                    principal=record.amount,
                    reverses=plan.reverses,
                ),
                timeout=self.settings.requests.ledger_timeout_seconds,
            )
        except DuplicateTransferError as exc:
            logger.warning(
                "Transfer for %s was already applied as %s, completing approval",
                record.reference,
                exc.receipt.reference,
            )
        except (LedgerError, asyncio.TimeoutError) as exc:
            await self.session.rollback()
            reason = str(exc) or "timed out"
            logger.error("Ledger refused %s: %s", record.reference, reason)
            raise LedgerFailureError(f"Transfer for {record.reference} failed: {reason}") from exc

        activate = (
            record.kind is RequestKind.FLOAT
            and record.details.get("direction", FloatDirection.TOP_UP.value) == FloatDirection.TOP_UP.value
        )
        if activate:
            requester = await self.directory.get_party(record.requester_id)
            if requester is not None and requester.awaiting_activation:
                await self.directory.activate_agent(record.requester_id)

        await self.session.commit()
        logger.info("Approved %s by %s", record.reference, actor_id)
        await self._publish(RequestApproved, approved)
        return RequestView.from_record(approved)

    async def reject(self, request_id: str, actor_id: str, note: Optional[str] = None) -> RequestView:
        record = await self._load_pending(request_id, actor_id, counterparty=True)
        await self._expire_if_overdue(record)
        rejected = await self._transition(
            record,
            RequestStatus.REJECTED,
            responded_at=self.clock.now(),
            response_note=note,
        )
        logger.info("Rejected %s by %s", record.reference, actor_id)
        await self._publish(RequestRejected, rejected, note=note)
        return RequestView.from_record(rejected)

    async def cancel(self, request_id: str, actor_id: str) -> RequestView:
        record = await self._load_pending(request_id, actor_id, counterparty=False)
        if record.kind not in CANCELLABLE_KINDS:
            raise RequestValidationError(f"{record.kind.value} requests cannot be cancelled")
        await self._expire_if_overdue(record)
        cancelled = await self._transition(record, RequestStatus.CANCELLED, responded_at=self.clock.now())
        logger.info("Cancelled %s by requester", record.reference)
        await self._publish(RequestCancelled, cancelled)
        return RequestView.from_record(cancelled)

    async def expire(self, request_id: str, now: Optional[datetime] = None) -> RequestRecord:
        """Retire an overdue PENDING request. No-op for terminal or not-yet-due ones."""
        now = now or self.clock.now()
        record = await self.registry.get(request_id)
        if record.status is not RequestStatus.PENDING or not record.is_overdue(now):
            return record
        try:
            expired = await self.registry.update_status(record.id, RequestStatus.PENDING, RequestStatus.EXPIRED)
        except RequestConflictError:
            # Someone else moved it first; their outcome stands.
            await self.session.rollback()
            return await self.registry.get(request_id)
        await self.session.commit()
        logger.info("Expired %s", record.reference)
        await self._publish(RequestExpired, expired)
        return expired

    async def reissue_code(self, request_id: str, actor_id: str) -> RequestView:
        """Rotate the confirmation code of a PENDING request; the old code stops working."""
        record = await self._load_pending(request_id, actor_id, counterparty=False)
        if not record.requires_code:
            raise RequestValidationError(f"{record.reference} does not use a confirmation code")
        await self._expire_if_overdue(record)

        issued = self.verifier.issue()
        await self.session.commit()
        try:
            updated = await self.registry.replace_code(record.id, issued.code_hash)
        except RequestConflictError:
            await self.session.rollback()
            raise
        await self.session.commit()
        logger.info("Reissued confirmation code for %s", record.reference)
        await self._publish(ConfirmationCodeReissued, updated, code=issued.plaintext)
        return RequestView.from_record(updated, confirmation_code=issued.plaintext)

    # ----------------------------------------------------------------- helpers

    async def _load_pending(self, request_id: str, actor_id: str, *, counterparty: bool) -> RequestRecord:
        record = await self.registry.get(request_id)
        allowed = record.counterparty_id if counterparty else record.requester_id
        if actor_id != allowed:
            side = "counterparty" if counterparty else "requester"
            raise RequestPermissionError(f"Only the {side} can act on request {record.reference}")
        if record.status is not RequestStatus.PENDING:
            raise RequestConflictError(
                f"Request {record.reference} is already {record.status.value}",
                current_status=record.status,
            )
        return record

    async def _expire_if_overdue(self, record: RequestRecord) -> None:
        if not record.is_overdue(self.clock.now()):
            return
        current = await self.expire(record.id, self.clock.now())
        if current.status is not RequestStatus.EXPIRED:
            raise RequestConflictError(
                f"Request {record.reference} is already {current.status.value}",
                current_status=current.status,
            )
        raise RequestExpiredError(f"Request {record.reference} expired at {record.expires_at.isoformat()}")

    async def _transition(self, record: RequestRecord, to_status: RequestStatus, **values: Any) -> RequestRecord:
        await self.session.commit()
        try:
            updated = await self.registry.update_status(record.id, RequestStatus.PENDING, to_status, **values)
        except RequestConflictError:
            await self.session.rollback()
            raise
        await self.session.commit()
        return updated

    async def _publish(self, event_type: type[RequestEvent], record: RequestRecord, **extra: Any) -> None:
        await self.events.publish(
            event_type(
                reference=record.reference,
                request_id=record.id,
                kind=record.kind.value,
                requester_id=record.requester_id,
                counterparty_id=record.counterparty_id,
                occurred_at=self.clock.now(),
                **extra,
            )
        )


__all__ = [
    "CANCELLABLE_KINDS",
    "RequestLifecycleService",
    "TransferPlan",
    "needs_confirmation_code",
    "pending_key_for",
    "plan_transfer",
]
