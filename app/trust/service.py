import logging
import uuid
from datetime import date
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.common.exceptions import HoldStateError, LedgerServiceError, LedgerUnavailableError
from app.common.pagination import fetch_page
from app.config import settings
from app.ledger.clients import TrustLedgerClient
from app.matters.models import Matter
from app.trust.balance import (
    HoldRelease,
    ensure_funds_available,
    ensure_matter_open,
    get_hold_for_update,
    lock_matter,
    release_hold,
    signed_amount,
    validate_amount,
)
from app.trust.models import Hold, HoldStatus, HoldType, Transaction, TransactionSource, TransactionType
from app.trust.schemas import HoldCreate, HoldUpdate, TransactionCreate

logger = logging.getLogger(__name__)


def _is_mirrored(matter: Matter, ledger: Optional[TrustLedgerClient]) -> bool:
    return bool(ledger is not None and ledger.is_configured and matter.external_account_id)


# --- Transactions ---


async def _mirror_transaction(
    matter: Matter, data: TransactionCreate, ledger: Optional[TrustLedgerClient]
) -> Optional[str]:
    """Post the transaction to the external ledger first.

    Deposits are best effort. Disbursements fail the request when
    ``ledger_strict_disbursements`` is set.
    """
    if not _is_mirrored(matter, ledger):
        return None
    try:
        if data.type == TransactionType.deposit:
            external_id = await ledger.create_charge(
                matter.external_account_id, data.amount_cents, data.description, data.payor, data.reference
            )
        else:
            external_id = await ledger.create_disbursement(
                matter.external_account_id, data.amount_cents, data.description, data.payee, data.check_number
            )
    except LedgerServiceError as exc:
        if data.type == TransactionType.disbursement and settings.ledger_strict_disbursements:
            logger.error("Trust ledger rejected disbursement for matter %s: %s", matter.id, exc.message)
            raise LedgerUnavailableError("disbursement", exc) from exc
        logger.warning("Failed to record %s for matter %s in trust ledger: %s", data.type.value, matter.id, exc.message)
        return None

    logger.info("Recorded %s for matter %s in trust ledger as %s", data.type.value, matter.id, external_id)
    return external_id


async def create_transaction(
    db: AsyncSession,
    data: TransactionCreate,
    ledger: Optional[TrustLedgerClient] = None,
    source: TransactionSource = TransactionSource.manual,
) -> Transaction:
    validate_amount(data.amount_cents)
    matter = await lock_matter(db, data.matter_id)
    ensure_matter_open(matter, "transactions")

    if data.type == TransactionType.disbursement:
        await ensure_funds_available(db, matter, data.amount_cents, ledger)

    external_id = await _mirror_transaction(matter, data, ledger)

    values = data.model_dump(exclude={"transaction_date"})
    transaction = Transaction(
        **values,
        transaction_date=data.transaction_date or date.today(),
        external_transaction_id=external_id,
        source=source,
    )
    transaction.matter = matter
    db.add(transaction)
    await db.flush()
    await db.refresh(transaction)
    return transaction


async def get_transaction(db: AsyncSession, transaction_id: uuid.UUID) -> Optional[Transaction]:
    result = await db.execute(select(Transaction).where(Transaction.id == transaction_id))
    return result.scalar_one_or_none()


async def get_transactions(
    db: AsyncSession,
    matter_id: Optional[uuid.UUID] = None,
    type: Optional[TransactionType] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    page: int = 1,
    page_size: int = 50,
) -> tuple[list[tuple[Transaction, int]], int]:
    """Newest first, each paired with the running balance over the filtered set.

    The page is fetched with SQL offset/limit. Its first running balance is
    the filtered total less the signed sum of the newer rows skipped by the
    offset.
    """
    conditions = []
    if matter_id:
        conditions.append(Transaction.matter_id == matter_id)
    if type:
        conditions.append(Transaction.type == type)
    if start_date:
        conditions.append(Transaction.transaction_date >= start_date)
    if end_date:
        conditions.append(Transaction.transaction_date <= end_date)

    newest_first = (Transaction.transaction_date.desc(), Transaction.created_at.desc(), Transaction.id.desc())

    total, balance = (
        await db.execute(
            select(func.count(Transaction.id), func.coalesce(func.sum(signed_amount()), 0)).where(*conditions)
        )
    ).one()

    offset = (page - 1) * page_size
    newer = 0
    if offset:
        skipped = (
            select(signed_amount().label("signed"))
            .where(*conditions)
            .order_by(*newest_first)
            .limit(offset)
            .subquery()
        )
        newer = (await db.execute(select(func.coalesce(func.sum(skipped.c.signed), 0)))).scalar_one()

    result = await db.execute(
        select(Transaction).where(*conditions).order_by(*newest_first).offset(offset).limit(page_size)
    )

    running = balance - newer
    with_balance = []
    for txn in result.scalars().all():
        with_balance.append((txn, running))
        running -= txn.amount_cents if txn.type == TransactionType.deposit else -txn.amount_cents
    return with_balance, total


# --- Holds ---


async def _mirror_hold(
    matter: Matter, amount_cents: int, hold_type: HoldType, description: str, ledger: Optional[TrustLedgerClient]
) -> Optional[str]:
    if not _is_mirrored(matter, ledger):
        return None
    try:
        external_id = await ledger.create_hold(matter.external_account_id, amount_cents, hold_type.value, description)
    except LedgerServiceError as exc:
        logger.warning("Failed to create hold for matter %s in trust ledger: %s", matter.id, exc.message)
        return None
    logger.info("Created trust ledger hold %s for matter %s", external_id, matter.id)
    return external_id


async def create_hold(db: AsyncSession, data: HoldCreate, ledger: Optional[TrustLedgerClient] = None) -> Hold:
    validate_amount(data.amount_cents, "Hold amount")
    matter = await lock_matter(db, data.matter_id)
    ensure_matter_open(matter, "holds")
    await ensure_funds_available(db, matter, data.amount_cents, ledger)

    external_id = await _mirror_hold(matter, data.amount_cents, data.type, data.description, ledger)
    hold = Hold(**data.model_dump(), status=HoldStatus.active, external_hold_id=external_id)
    hold.matter = matter
    db.add(hold)
    await db.flush()
    await db.refresh(hold)
    return hold


async def record_released_hold(
    db: AsyncSession,
    matter_id: uuid.UUID,
    amount_cents: int,
    hold_type: HoldType,
    description: str,
    release_reason: Optional[str] = None,
) -> Hold:
    """Record a hold that was already released before it reached this system.

    It never reserved funds here, so no availability check applies.
    """
    validate_amount(amount_cents, "Hold amount")
    matter = await lock_matter(db, matter_id)
    ensure_matter_open(matter, "holds")
    hold = Hold(
        matter_id=matter.id,
        amount_cents=amount_cents,
        type=hold_type,
        description=description,
        status=HoldStatus.released,
        release_reason=release_reason,
    )
    hold.matter = matter
    db.add(hold)
    await db.flush()
    await db.refresh(hold)
    return hold


async def get_holds(
    db: AsyncSession,
    matter_id: Optional[uuid.UUID] = None,
    status: Optional[HoldStatus] = None,
    page: int = 1,
    page_size: int = 50,
) -> tuple[list[Hold], int]:
    query = select(Hold)
    count_query = select(func.count(Hold.id))

    if matter_id:
        query = query.where(Hold.matter_id == matter_id)
        count_query = count_query.where(Hold.matter_id == matter_id)
    if status:
        query = query.where(Hold.status == status)
        count_query = count_query.where(Hold.status == status)

    return await fetch_page(db, query.order_by(Hold.created_at.desc()), count_query, page, page_size)


async def get_hold(db: AsyncSession, hold_id: uuid.UUID) -> Optional[Hold]:
    result = await db.execute(select(Hold).where(Hold.id == hold_id))
    return result.scalar_one_or_none()


async def cancel_hold(db: AsyncSession, hold_id: uuid.UUID, ledger: Optional[TrustLedgerClient] = None) -> Hold:
    hold = await get_hold_for_update(db, hold_id)
    if hold.status != HoldStatus.active:
        raise HoldStateError("Only active holds can be cancelled")

    if hold.external_hold_id and ledger is not None and ledger.is_configured:
        try:
            await ledger.release_hold(hold.external_hold_id, "Hold cancelled")
        except LedgerServiceError as exc:
            logger.warning("Failed to cancel hold %s in trust ledger: %s", hold.id, exc.message)

    hold.status = HoldStatus.cancelled
    await db.flush()
    await db.refresh(hold)
    return hold


async def update_hold(
    db: AsyncSession,
    hold_id: uuid.UUID,
    data: HoldUpdate,
    ledger: Optional[TrustLedgerClient] = None,
) -> tuple[Hold, Optional[HoldRelease]]:
    """Edit the description and/or move an active hold to released or cancelled."""
    hold = await get_hold_for_update(db, hold_id)

    if data.status is not None and data.status != hold.status:
        if hold.status != HoldStatus.active or data.status == HoldStatus.active:
            raise HoldStateError(f"Cannot change hold status from {hold.status.value} to {data.status.value}")

    if data.description is not None:
        hold.description = data.description
        await db.flush()

    if data.status == HoldStatus.released and hold.status == HoldStatus.active:
        release = await release_hold(
            db, hold.id, reason=data.release_reason or "", released_by=data.released_by, ledger=ledger
        )
        return release.hold, release
    if data.status == HoldStatus.cancelled and hold.status == HoldStatus.active:
        return await cancel_hold(db, hold.id, ledger), None

    await db.refresh(hold)
    return hold, None
