"""SQLAlchemy implementation of the ledger.

Transfers are written on the caller's session so that the ledger legs and the
request status change commit (or roll back) together.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Sequence

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from agentcash.core.clock import Clock, SystemClock, ensure_utc
from agentcash.core.config import LedgerSettings
from agentcash.db.models import LedgerAccount, LedgerEntry, LedgerTransfer
from agentcash.modules.ledger.exceptions import (
    ActivationMinimumError,
    DuplicateTransferError,
    FloatFloorError,
    InsufficientFundsError,
    LedgerError,
    TransferNotFoundError,
    UnbalancedTransferError,
)
from agentcash.modules.ledger.models import (
    BalanceSnapshot,
    Direction,
    LedgerBook,
    LedgerEntryRecord,
    Leg,
    TransferReceipt,
    TransferRecord,
)

logger = logging.getLogger(__name__)

# Books that may never go below zero. FLOAT has its own floor, TREASURY is the issuing side.
NON_NEGATIVE_BOOKS = {LedgerBook.WALLET, LedgerBook.COMMISSION, LedgerBook.REVENUE}


class SqlLedger:
    def __init__(
        self,
        session: AsyncSession,
        settings: LedgerSettings | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.session = session
        self.settings = settings or LedgerSettings()
        self.clock = clock or SystemClock()

    async def transfer(
        self,
        idempotency_key: str,
        legs: Sequence[Leg],
        *,
        reference: str,
        kind: str,
        payer_id: str,
        payee_id: str,
        principal: int,
        reverses: str | None = None,
    ) -> TransferReceipt:
        existing = await self._get_transfer_model(LedgerTransfer.idempotency_key == idempotency_key)
        if existing is not None:
            raise DuplicateTransferError(self._to_receipt(existing))

        self._check_balanced(legs)

        deltas: dict[tuple[str, LedgerBook], list[Leg]] = defaultdict(list)
        for leg in legs:
            deltas[(leg.owner_id, leg.book)].append(leg)

        # Fixed lock order across concurrent transfers.
        accounts: dict[tuple[str, LedgerBook], LedgerAccount] = {}
        for owner_id, book in sorted(deltas, key=lambda key: (key[0], key[1].value)):
            accounts[(owner_id, book)] = await self._get_or_create_account(owner_id, book)

        for key, account_legs in deltas.items():
            await self._check_leg_limits(accounts[key], account_legs)

        original = None
        if reverses is not None:
            original = await self._get_transfer_model(LedgerTransfer.id == reverses)
            if original is None:
                raise TransferNotFoundError(reverses)
            if original.reversed_at is not None:
                raise LedgerError(f"Transfer {original.reference} has already been reversed")

        now = self.clock.now()
        transfer = LedgerTransfer(
            idempotency_key=idempotency_key,
            reference=reference,
            kind=kind,
            payer_id=payer_id,
            payee_id=payee_id,
            principal=principal,
            reverses_id=reverses,
            completed_at=now,
        )
        self.session.add(transfer)
        await self.session.flush()

        for leg in legs:
            account = accounts[(leg.owner_id, leg.book)]
            signed = leg.amount if leg.direction is Direction.CREDIT else -leg.amount
            account.balance = account.balance + signed
            self.session.add(
                LedgerEntry(
                    transfer_id=transfer.id,
                    ledger_account_id=account.id,
                    direction=leg.direction.value,
                    amount=leg.amount,
                    balance_after=account.balance,
                    created_at=now,
                )
            )

        if original is not None:
            original.reversed_at = now

        await self.session.flush()
        logger.info("Applied transfer %s (%s) with %d legs", reference, kind, len(legs))
        return self._to_receipt(transfer)

    async def balance(self, owner_id: str, book: LedgerBook) -> int:
        stmt = select(LedgerAccount.balance).where(
            LedgerAccount.owner_id == owner_id,
            LedgerAccount.book == book.value,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() or 0

    async def balances(self, owner_id: str) -> Sequence[BalanceSnapshot]:
        stmt = select(LedgerAccount).where(LedgerAccount.owner_id == owner_id).order_by(LedgerAccount.book)
        result = await self.session.execute(stmt)
        return [
            BalanceSnapshot(
                owner_id=row.owner_id,
                book=LedgerBook(row.book),
                balance=row.balance,
                currency=row.currency,
            )
            for row in result.scalars().all()
        ]

    async def get_transfer(self, reference: str) -> TransferRecord | None:
        model = await self._get_transfer_model(LedgerTransfer.reference == reference)
        return self._to_record(model) if model else None

    async def list_entries(self, owner_id: str, limit: int = 50, offset: int = 0) -> Sequence[LedgerEntryRecord]:
        stmt = (
            select(LedgerEntry, LedgerAccount.book, LedgerTransfer.reference)
            .join(LedgerAccount, LedgerEntry.ledger_account_id == LedgerAccount.id)
            .join(LedgerTransfer, LedgerEntry.transfer_id == LedgerTransfer.id)
            .where(LedgerAccount.owner_id == owner_id)
            .order_by(desc(LedgerEntry.id))
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [
            LedgerEntryRecord(
                transfer_reference=reference,
                book=LedgerBook(book),
                direction=Direction(entry.direction),
                amount=entry.amount,
                balance_after=entry.balance_after,
                created_at=ensure_utc(entry.created_at),
            )
            for entry, book, reference in result.all()
        ]

    @staticmethod
    def _check_balanced(legs: Sequence[Leg]) -> None:
        if not legs:
            raise UnbalancedTransferError("A transfer needs at least one leg")
        if any(leg.amount <= 0 for leg in legs):
            raise UnbalancedTransferError("Leg amounts must be positive")
        debits = sum(leg.amount for leg in legs if leg.direction is Direction.DEBIT)
        credits = sum(leg.amount for leg in legs if leg.direction is Direction.CREDIT)
        if debits != credits:
            raise UnbalancedTransferError(f"Debits {debits} do not match credits {credits}")

    async def _check_leg_limits(self, account: LedgerAccount, legs: list[Leg]) -> None:
        book = LedgerBook(account.book)
        debited = sum(leg.amount for leg in legs if leg.direction is Direction.DEBIT)
        credited = sum(leg.amount for leg in legs if leg.direction is Direction.CREDIT)
        resulting = account.balance + credited - debited

        if debited:
            if book in NON_NEGATIVE_BOOKS and resulting < 0:
                raise InsufficientFundsError(account.owner_id, book.value, account.balance, debited)
            if book is LedgerBook.FLOAT and resulting < self.settings.float_floor:
                raise FloatFloorError(account.owner_id, account.balance + credited, debited, self.settings.float_floor)

        if book is LedgerBook.FLOAT and credited and not await self._has_entries(account):
            if credited < self.settings.activation_minimum:
                raise ActivationMinimumError(account.owner_id, credited, self.settings.activation_minimum)

    async def _has_entries(self, account: LedgerAccount) -> bool:
        stmt = select(func.count(LedgerEntry.id)).where(LedgerEntry.ledger_account_id == account.id)
        result = await self.session.execute(stmt)
        return (result.scalar_one() or 0) > 0

    async def _get_or_create_account(self, owner_id: str, book: LedgerBook) -> LedgerAccount:
        stmt = (
            select(LedgerAccount)
            .where(LedgerAccount.owner_id == owner_id, LedgerAccount.book == book.value)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        account = result.scalars().first()
        if account is None:
            account = LedgerAccount(
                owner_id=owner_id,
                book=book.value,
                balance=0,
                currency=self.settings.currency,
            )
            self.session.add(account)
            await self.session.flush()
        return account

    async def _get_transfer_model(self, criterion) -> LedgerTransfer | None:
        stmt = select(LedgerTransfer).where(criterion).execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    @staticmethod
    def _to_receipt(model: LedgerTransfer) -> TransferReceipt:
        return TransferReceipt(
            transfer_id=model.id,
            idempotency_key=model.idempotency_key,
            reference=model.reference,
            completed_at=ensure_utc(model.completed_at),
        )

    @staticmethod
    def _to_record(model: LedgerTransfer) -> TransferRecord:
        return TransferRecord(
            id=model.id,
            reference=model.reference,
            kind=model.kind,
            payer_id=model.payer_id,
            payee_id=model.payee_id,
            principal=model.principal,
            completed_at=ensure_utc(model.completed_at),
            reversed_at=ensure_utc(model.reversed_at) if model.reversed_at else None,
        )
