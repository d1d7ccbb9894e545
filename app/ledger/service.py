import logging
import uuid
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.common.exceptions import LedgerServiceError
from app.config import settings
from app.ledger.clients import TrustLedgerClient
from app.ledger.schemas import (
    ConnectionTestResponse,
    LedgerStatusResponse,
    SyncCounts,
    SyncResult,
    SyncStatusResponse,
)
from app.matters.models import Matter
from app.settings.service import TrustContext
from app.trust.models import Hold, Transaction

logger = logging.getLogger(__name__)


async def create_matter_sub_account(matter: Matter, client_name: str, ledger: TrustLedgerClient) -> Optional[str]:
    """Open a ledger sub-account for ``matter``. Best effort: failures are logged and return None."""
    if not ledger.is_configured:
        return None
    try:
        account_id = await ledger.create_sub_account(
            name=f"{client_name} - {matter.name}",
            matter_id=str(matter.id),
            client_id=str(matter.client_id),
            matter_number=matter.matter_number,
        )
    except LedgerServiceError as exc:
        logger.warning("Failed to create trust ledger sub-account for matter %s: %s", matter.matter_number, exc.message)
        return None
    logger.info("Created trust ledger sub-account %s for matter %s", account_id, matter.matter_number)
    return account_id


async def get_ledger_status(context: TrustContext, ledger: TrustLedgerClient) -> LedgerStatusResponse:
    status = LedgerStatusResponse(
        api_key_present=bool(settings.ledger_api_key),
        trust_account_configured=bool(context.external_trust_account_id),
        operating_account_configured=bool(context.external_operating_account_id),
        is_configured=ledger.is_configured,
    )
    if not ledger.is_configured:
        if not status.api_key_present:
            status.connection_message = "Ledger API key not set"
        else:
            status.connection_message = "Trust account ID not configured in settings"
        return status

    result = await ledger.test_connection()
    status.connection_status = "connected" if result.success else "error"
    status.connection_message = result.message
    if result.success:
        try:
            balance = await ledger.get_account_balance(context.external_trust_account_id)
        except LedgerServiceError as exc:
            logger.warning("Failed to fetch trust account balance: %s", exc.message)
        else:
            status.trust_account_balance_cents = balance.balance_cents
            status.available_balance_cents = balance.available_cents
    return status


async def check_ledger_connection(ledger: TrustLedgerClient) -> ConnectionTestResponse:
    result = await ledger.test_connection()
    response = ConnectionTestResponse(success=result.success, message=result.message)
    if not (result.success and ledger.is_configured):
        return response
    try:
        summary = await ledger.get_trust_account_summary()
    except LedgerServiceError as exc:
        logger.warning("Failed to fetch trust account summary: %s", exc.message)
        return response
    if summary is not None:
        response.trust_account_balance_cents = summary.trust_account.balance_cents
        response.available_balance_cents = summary.trust_account.available_cents
        response.sub_account_count = len(summary.sub_accounts)
        response.total_client_funds_cents = summary.total_balance_cents
        response.total_held_cents = summary.total_held_cents
    return response


async def _counts(db: AsyncSession, model, external_column) -> SyncCounts:
    total = (await db.execute(select(func.count(model.id)))).scalar_one()
    synced = (await db.execute(select(func.count(model.id)).where(external_column.is_not(None)))).scalar_one()
    return SyncCounts(total=total, synced=synced, not_synced=total - synced)


async def get_sync_status(db: AsyncSession, ledger: TrustLedgerClient) -> SyncStatusResponse:
    if not ledger.is_configured:
        return SyncStatusResponse(configured=False, message="Trust ledger integration not configured")
    return SyncStatusResponse(
        configured=True,
        matters=await _counts(db, Matter, Matter.external_account_id),
        transactions=await _counts(db, Transaction, Transaction.external_transaction_id),
        holds=await _counts(db, Hold, Hold.external_hold_id),
    )


async def sync_matters(
    db: AsyncSession, ledger: TrustLedgerClient, matter_id: Optional[uuid.UUID] = None
) -> list[SyncResult]:
    """Create sub-accounts for unmirrored matters, or for the one matter given."""
    query = select(Matter)
    if matter_id:
        query = query.where(Matter.id == matter_id)
    else:
        query = query.where(Matter.external_account_id.is_(None))
    matters = (await db.execute(query.order_by(Matter.created_at))).scalars().all()

    results = []
    for matter in matters:
        try:
            account_id = await ledger.create_sub_account(
                name=f"{matter.client.name} - {matter.name}",
                matter_id=str(matter.id),
                client_id=str(matter.client_id),
                matter_number=matter.matter_number,
            )
        except LedgerServiceError as exc:
            logger.warning("Ledger sync failed for matter %s: %s", matter.matter_number, exc.message)
            results.append(
                SyncResult(matter_id=matter.id, matter_number=matter.matter_number, success=False, error=exc.message)
            )
            continue
        matter.external_account_id = account_id
        results.append(
            SyncResult(
                matter_id=matter.id, matter_number=matter.matter_number, success=True, external_account_id=account_id
            )
        )
    await db.flush()
    return results
