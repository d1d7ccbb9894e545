import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.clients.models import Client
from app.clients.service import get_client
from app.common.exceptions import MatterBalanceError, TrustAccountError
from app.common.money import dollars_to_cents
from app.documents.schemas import ExtractedMatter, ImportHold, ImportTransaction, MatterImportRequest
from app.ledger.clients import TrustLedgerClient
from app.matters.models import Matter, MatterStatus
from app.matters.schemas import MatterCreate
from app.matters.service import create_matter
from app.trust.balance import close_matter
from app.trust.models import HoldType, TransactionSource, TransactionType
from app.trust.schemas import HoldCreate, TransactionCreate
from app.trust.service import create_hold, create_transaction, record_released_hold

logger = logging.getLogger(__name__)

HOLD_TYPE_KEYWORDS = [
    ("retainer", HoldType.retainer),
    ("settlement", HoldType.settlement),
    ("escrow", HoldType.escrow),
    ("compliance", HoldType.compliance),
    ("regulatory", HoldType.compliance),
]


def map_hold_type(value: str) -> HoldType:
    """Map a free-text hold type to a known type; unrecognised types become retainers."""
    normalized = (value or "").strip().lower()
    for keyword, hold_type in HOLD_TYPE_KEYWORDS:
        if keyword in normalized:
            return hold_type
    return HoldType.retainer


def parse_item_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


@dataclass
class ImportResult:
    transaction_ids: list[uuid.UUID] = field(default_factory=list)
    hold_ids: list[uuid.UUID] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def _describe_error(exc: Exception) -> str:
    if isinstance(exc, TrustAccountError):
        return exc.message
    if isinstance(exc, ValidationError):
        return "; ".join(f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in exc.errors())
    return str(exc)


async def import_items(
    db: AsyncSession,
    matter_id: uuid.UUID,
    transactions: list[ImportTransaction],
    holds: list[ImportHold],
    ledger: Optional[TrustLedgerClient] = None,
) -> ImportResult:
    """Import the selected extracted items through the regular trust paths.

    Transactions are applied in date order with deposits ahead of
    disbursements on the same day, then holds. Each item runs in its own
    savepoint; a rejected item is reported in ``errors`` and the rest
    continue.
    """
    result = ImportResult()

    dated = []
    for txn in transactions:
        if not txn.selected:
            continue
        txn_date = parse_item_date(txn.transaction_date)
        if txn_date is None:
            result.errors.append(f"Invalid date for transaction: {txn.description}")
            continue
        dated.append((txn_date, txn))
    dated.sort(key=lambda pair: (pair[0], pair[1].type != TransactionType.deposit.value))

    for txn_date, txn in dated:
        try:
            async with db.begin_nested():
                data = TransactionCreate(
                    matter_id=matter_id,
                    type=TransactionType(txn.type),
                    amount_cents=dollars_to_cents(txn.amount),
                    description=txn.description,
                    payee=txn.payee,
                    payor=txn.payor,
                    check_number=txn.check_number,
                    reference=txn.reference,
                    transaction_date=txn_date,
                )
                created = await create_transaction(db, data, ledger, source=TransactionSource.document_import)
            result.transaction_ids.append(created.id)
        except (TrustAccountError, ValidationError) as exc:
            logger.info("Skipped imported transaction %r: %s", txn.description, _describe_error(exc))
            result.errors.append(f"Failed to import transaction: {txn.description} ({_describe_error(exc)})")

    for hold in holds:
        if not hold.selected:
            continue
        description = f"{hold.description} - {hold.notes}" if hold.notes else hold.description
        hold_type = map_hold_type(hold.type)
        try:
            async with db.begin_nested():
                amount_cents = dollars_to_cents(hold.amount)
                if hold.status == "released":
                    created = await record_released_hold(
                        db, matter_id, amount_cents, hold_type, description[:500], hold.release_conditions
                    )
                else:
                    data = HoldCreate(
                        matter_id=matter_id, amount_cents=amount_cents, type=hold_type, description=description[:500]
                    )
                    created = await create_hold(db, data, ledger)
            result.hold_ids.append(created.id)
        except (TrustAccountError, ValidationError) as exc:
            logger.info("Skipped imported hold %r: %s", hold.description, _describe_error(exc))
            result.errors.append(f"Failed to import hold: {hold.description} ({_describe_error(exc)})")

    return result


def _truncate(value: Optional[str], length: int) -> Optional[str]:
    return value[:length] if value else None


def _matter_description(matter: ExtractedMatter) -> Optional[str]:
    parts = [matter.description] if matter.description else []
    for label, value in (
        ("Court", matter.court),
        ("Case number", matter.court_case_number),
        ("Opposing party", matter.opposing_party),
        ("Opposing counsel", matter.opposing_counsel),
    ):
        if value:
            parts.append(f"{label}: {value}")
    return "\n".join(parts)[:2000] or None


@dataclass
class MatterImportResult:
    matter: Matter
    client: Client
    client_is_new: bool
    items: ImportResult


async def import_matter(
    db: AsyncSession, data: MatterImportRequest, ledger: Optional[TrustLedgerClient] = None
) -> MatterImportResult:
    """Create a matter (and its client, unless an existing one is named) from
    extracted document data, then import its items.

    The matter is always opened with a system-assigned number. When the
    document marks it closed, closing is attempted after the import and a
    non-zero balance leaves it open with an error reported.
    """
    extracted = data.matter
    matter_data = MatterCreate(
        client_id=data.existing_client_id,
        new_client=None if data.existing_client_id else data.client,
        name=extracted.name[:500],
        description=_matter_description(extracted),
        practice_area=_truncate(extracted.practice_area or extracted.matter_type, 255),
        responsible_attorney=_truncate(extracted.responsible_attorney, 255),
        open_date=parse_item_date(extracted.open_date),
    )
    matter, new_client = await create_matter(db, matter_data, ledger)

    items = await import_items(db, matter.id, data.transactions, data.holds, ledger)

    if (extracted.status or "").strip().lower() == MatterStatus.closed.value:
        try:
            async with db.begin_nested():
                matter = await close_matter(db, matter.id)
        except MatterBalanceError as exc:
            await db.refresh(matter)
            logger.info("Imported matter %s left open: %s", matter.matter_number, exc.message)
            items.errors.append(f"Matter left open: {exc.message}")

    client = new_client or await get_client(db, matter.client_id)
    return MatterImportResult(matter=matter, client=client, client_is_new=new_client is not None, items=items)
