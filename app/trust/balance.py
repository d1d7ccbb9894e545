"""
Matter balance and hold accounting.

All trust arithmetic lives here and every mutation path goes through it:
transaction create, hold create/release/cancel, matter close and document
import. Callers hold the per-request transaction from ``get_db``; mutating
helpers lock the matter row first so that reading the balance, validating
and writing happen under one lock.

    balance   = sum(deposits) - sum(disbursements)
    available = balance - sum(active holds)
"""

import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.common.base_models import utcnow
from app.common.exceptions import (
    HoldStateError,
    InsufficientFundsError,
    InvalidAmountError,
    LedgerServiceError,
    MatterBalanceError,
    MatterClosedError,
    NotFoundError,
)
from app.common.money import format_cents
from app.ledger.clients import TrustLedgerClient
from app.matters.models import Matter, MatterStatus
from app.trust.models import Hold, HoldStatus, Transaction, TransactionStatus, TransactionType

logger = logging.getLogger(__name__)

MAX_AMOUNT_CENTS = 100_000_000


@dataclass(frozen=True)
class MatterBalance:
    matter_id: uuid.UUID
    deposits_cents: int = 0
    disbursements_cents: int = 0
    held_cents: int = 0

    @property
    def balance_cents(self) -> int:
        return self.deposits_cents - self.disbursements_cents

    @property
    def available_cents(self) -> int:
        return self.balance_cents - self.held_cents

    def as_dict(self) -> dict:
        return {
            "deposits_cents": self.deposits_cents,
            "disbursements_cents": self.disbursements_cents,
            "balance_cents": self.balance_cents,
            "held_cents": self.held_cents,
            "available_cents": self.available_cents,
        }


@dataclass(frozen=True)
class HoldRelease:
    hold: Hold
    released_cents: int
    remaining_cents: int
    ledger_synced: bool = False

    @property
    def is_partial(self) -> bool:
        return self.remaining_cents > 0

    @property
    def action(self) -> str:
        return "partial_release" if self.is_partial else "release"


def signed_amount():
    """Transaction amount as a signed SQL expression: deposits positive, disbursements negative."""
    return case(
        (Transaction.type == TransactionType.deposit, Transaction.amount_cents),
        else_=-Transaction.amount_cents,
    )


def validate_amount(amount_cents: int, label: str = "Amount") -> None:
    if amount_cents <= 0:
        raise InvalidAmountError(f"{label} must be greater than 0")
    if amount_cents > MAX_AMOUNT_CENTS:
        raise InvalidAmountError(f"{label} exceeds maximum of {format_cents(MAX_AMOUNT_CENTS)}")


async def compute_balance(db: AsyncSession, matter_id: uuid.UUID) -> int:
    result = await db.execute(
        select(func.coalesce(func.sum(signed_amount()), 0)).where(
            Transaction.matter_id == matter_id,
            Transaction.status == TransactionStatus.completed,
        )
    )
    return int(result.scalar_one())


async def compute_active_holds(db: AsyncSession, matter_id: uuid.UUID) -> int:
    result = await db.execute(
        select(func.coalesce(func.sum(Hold.amount_cents), 0)).where(
            Hold.matter_id == matter_id,
            Hold.status == HoldStatus.active,
        )
    )
    return int(result.scalar_one())


async def compute_available(db: AsyncSession, matter_id: uuid.UUID) -> int:
    return await compute_balance(db, matter_id) - await compute_active_holds(db, matter_id)


async def get_matter_balances(db: AsyncSession, matter_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, MatterBalance]:
    """Balances for many matters in two grouped queries. Every requested id gets an entry."""
    ids = list(matter_ids)
    if not ids:
        return {}

    tx_rows = await db.execute(
        select(
            Transaction.matter_id,
            func.coalesce(
                func.sum(case((Transaction.type == TransactionType.deposit, Transaction.amount_cents), else_=0)), 0
            ),
            func.coalesce(
                func.sum(case((Transaction.type == TransactionType.disbursement, Transaction.amount_cents), else_=0)),
                0,
            ),
        )
        .where(Transaction.matter_id.in_(ids), Transaction.status == TransactionStatus.completed)
        .group_by(Transaction.matter_id)
    )
    totals = {row[0]: (int(row[1]), int(row[2])) for row in tx_rows.all()}

    hold_rows = await db.execute(
        select(Hold.matter_id, func.coalesce(func.sum(Hold.amount_cents), 0))
        .where(Hold.matter_id.in_(ids), Hold.status == HoldStatus.active)
        .group_by(Hold.matter_id)
    )
    held = {row[0]: int(row[1]) for row in hold_rows.all()}

    balances = {}
    for matter_id in ids:
        deposits, disbursements = totals.get(matter_id, (0, 0))
        balances[matter_id] = MatterBalance(
            matter_id=matter_id,
            deposits_cents=deposits,
            disbursements_cents=disbursements,
            held_cents=held.get(matter_id, 0),
        )
    return balances


async def get_matter_balance(db: AsyncSession, matter_id: uuid.UUID) -> MatterBalance:
    return (await get_matter_balances(db, [matter_id]))[matter_id]


async def can_disburse(db: AsyncSession, matter_id: uuid.UUID, amount_cents: int) -> bool:
    return amount_cents <= await compute_available(db, matter_id)


async def can_create_hold(db: AsyncSession, matter_id: uuid.UUID, amount_cents: int) -> bool:
    # The hold being created is not yet in the table, so this is the same check.
    return amount_cents <= await compute_available(db, matter_id)


async def lock_matter(db: AsyncSession, matter_id: uuid.UUID) -> Matter:
    """Load the matter with ``SELECT ... FOR UPDATE``; the lock lasts until the request commits."""
    result = await db.execute(
        select(Matter)
        .where(Matter.id == matter_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    matter = result.scalar_one_or_none()
    if matter is None:
        raise NotFoundError("Matter", matter_id)
    return matter


def ensure_matter_open(matter: Matter, what: str) -> None:
    if matter.status == MatterStatus.closed:
        raise MatterClosedError(what)


async def ensure_funds_available(
    db: AsyncSession,
    matter: Matter,
    amount_cents: int,
    ledger: Optional[TrustLedgerClient] = None,
) -> MatterBalance:
    """Raise ``InsufficientFundsError`` unless ``amount_cents`` fits in the available balance.

    A mirrored matter is first checked against the external ledger. If the
    ledger cannot be reached the local figures decide alone. The local check
    always runs.
    """
    if ledger is not None and ledger.is_configured and matter.external_account_id:
        try:
            remote = await ledger.verify_available_funds(matter.external_account_id, amount_cents)
        except LedgerServiceError as exc:
            logger.warning(
                "Trust ledger balance check failed for matter %s, using local balance: %s",
                matter.id,
                exc.message,
            )
            remote = None
        if remote is not None and amount_cents > remote.available_cents:
            raise InsufficientFundsError(
                remote.balance_cents, remote.held_cents, amount_cents, verified_by_ledger=True
            )

    local = await get_matter_balance(db, matter.id)
    if amount_cents > local.available_cents:
        raise InsufficientFundsError(local.balance_cents, local.held_cents, amount_cents)
    return local


async def get_hold_for_update(db: AsyncSession, hold_id: uuid.UUID) -> Hold:
    result = await db.execute(
        select(Hold).where(Hold.id == hold_id).with_for_update().execution_options(populate_existing=True)
    )
    hold = result.scalar_one_or_none()
    if hold is None:
        raise NotFoundError("Hold", hold_id)
    return hold


async def release_hold(
    db: AsyncSession,
    hold_id: uuid.UUID,
    amount_cents: Optional[int] = None,
    reason: str = "",
    released_by: Optional[str] = None,
    ledger: Optional[TrustLedgerClient] = None,
) -> HoldRelease:
    """Release a hold in full or in part.

    Omitting ``amount_cents`` (or passing the full outstanding amount) marks
    the hold released and keeps its amount. A smaller amount reduces the hold
    and leaves it active.
    """
    hold = await get_hold_for_update(db, hold_id)
    if hold.status != HoldStatus.active:
        raise HoldStateError("Only active holds can be released")

    remaining = hold.amount_cents
    release_amount = remaining if amount_cents is None else amount_cents
    if release_amount <= 0:
        raise InvalidAmountError("Release amount must be greater than 0")
    if release_amount > remaining:
        raise InvalidAmountError(f"Release amount cannot exceed hold amount ({format_cents(remaining)})")
    left = remaining - release_amount

    ledger_synced = False
    if ledger is not None and ledger.is_configured and hold.external_hold_id:
        try:
            await ledger.release_hold(hold.external_hold_id, reason)
            if left:
                # The ledger has no partial release; re-reserve the remainder.
                hold.external_hold_id = None
                if hold.matter.external_account_id:
                    hold.external_hold_id = await ledger.create_hold(
                        hold.matter.external_account_id, left, hold.type.value, hold.description
                    )
            ledger_synced = True
        except LedgerServiceError as exc:
            if left and hold.external_hold_id is None:
                logger.warning(
                    "Released hold %s in trust ledger but could not re-reserve %s: %s",
                    hold.id,
                    format_cents(left),
                    exc.message,
                )
            else:
                logger.warning("Failed to release hold %s in trust ledger: %s", hold.id, exc.message)

    if left:
        hold.amount_cents = left
        hold.release_reason = f"Partial release of {format_cents(release_amount)}: {reason}"
    else:
        hold.status = HoldStatus.released
        hold.released_at = utcnow()
        hold.released_by = released_by
        hold.release_reason = reason

    await db.flush()
    await db.refresh(hold)
    return HoldRelease(hold=hold, released_cents=release_amount, remaining_cents=left, ledger_synced=ledger_synced)


async def close_matter(db: AsyncSession, matter_id: uuid.UUID, close_date: Optional[date] = None) -> Matter:
    matter = await lock_matter(db, matter_id)
    if matter.status == MatterStatus.closed:
        return matter

    balance = await compute_balance(db, matter.id)
    if balance != 0:
        raise MatterBalanceError(balance)

    matter.status = MatterStatus.closed
    matter.close_date = close_date or date.today()
    await db.flush()
    await db.refresh(matter)
    return matter
