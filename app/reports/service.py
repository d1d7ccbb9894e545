import json
import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.clients.models import Client
from app.matters.models import Matter
from app.reports.models import ReportHistory, ReportType
from app.reports.schemas import (
    ClientBalance,
    ClientLedgerReport,
    FirmInfo,
    MatterSummary,
    MonthlyTrustReport,
    ReconciliationReport,
    ReportTransaction,
)
from app.settings.service import TrustContext
from app.trust.balance import signed_amount
from app.trust.models import Hold, HoldStatus, Transaction, TransactionStatus, TransactionType


def firm_info(context: TrustContext) -> FirmInfo:
    return FirmInfo(
        firm_name=context.firm_name or "Law Firm",
        bank_name=context.bank_name,
        account_number=context.account_number_masked,
        state=context.state,
    )


async def _balance(db: AsyncSession, *conditions) -> int:
    result = await db.execute(
        select(func.coalesce(func.sum(signed_amount()), 0))
        .select_from(Transaction)
        .join(Matter, Transaction.matter_id == Matter.id)
        .where(Transaction.status == TransactionStatus.completed, *conditions)
    )
    return int(result.scalar_one())


async def _transactions_with_balance(
    db: AsyncSession, opening_balance: int, *conditions
) -> list[ReportTransaction]:
    result = await db.execute(
        select(Transaction, Matter.name, Matter.matter_number, Client.name)
        .join(Matter, Transaction.matter_id == Matter.id)
        .join(Client, Matter.client_id == Client.id)
        .where(Transaction.status == TransactionStatus.completed, *conditions)
        .order_by(Transaction.transaction_date.asc(), Transaction.created_at.asc())
    )

    running = opening_balance
    rows = []
    for txn, matter_name, matter_number, client_name in result.all():
        running += txn.amount_cents if txn.type == TransactionType.deposit else -txn.amount_cents
        rows.append(
            ReportTransaction(
                id=txn.id,
                transaction_date=txn.transaction_date,
                type=txn.type.value,
                amount_cents=txn.amount_cents,
                description=txn.description,
                payee=txn.payee,
                payor=txn.payor,
                check_number=txn.check_number,
                matter_id=txn.matter_id,
                matter_name=matter_name,
                matter_number=matter_number,
                client_name=client_name,
                running_balance_cents=running,
            )
        )
    return rows


async def _matter_summaries(
    db: AsyncSession,
    as_of: Optional[date] = None,
    client_id: Optional[uuid.UUID] = None,
    non_zero_only: bool = True,
) -> list[MatterSummary]:
    """Per-matter balance through ``as_of`` with the currently active holds."""
    join_on = [Transaction.matter_id == Matter.id, Transaction.status == TransactionStatus.completed]
    if as_of is not None:
        join_on.append(Transaction.transaction_date <= as_of)

    query = (
        select(
            Matter.id,
            Matter.name,
            Matter.matter_number,
            Matter.status,
            Client.id,
            Client.name,
            func.coalesce(func.sum(signed_amount()), 0),
        )
        .join(Client, Matter.client_id == Client.id)
        .outerjoin(Transaction, and_(*join_on))
        .group_by(Matter.id, Matter.name, Matter.matter_number, Matter.status, Client.id, Client.name)
        .order_by(Client.name, Matter.matter_number)
    )
    if client_id is not None:
        query = query.where(Matter.client_id == client_id)
    rows = (await db.execute(query)).all()

    hold_rows = await db.execute(
        select(Hold.matter_id, func.coalesce(func.sum(Hold.amount_cents), 0))
        .where(Hold.status == HoldStatus.active)
        .group_by(Hold.matter_id)
    )
    held = {row[0]: int(row[1]) for row in hold_rows.all()}

    summaries = []
    for matter_id, name, number, status, owner_id, owner_name, balance in rows:
        balance = int(balance)
        if non_zero_only and balance == 0:
            continue
        holds = held.get(matter_id, 0)
        summaries.append(
            MatterSummary(
                matter_id=matter_id,
                matter_name=name,
                matter_number=number,
                client_id=owner_id,
                client_name=owner_name,
                status=status.value,
                balance_cents=balance,
                active_holds_cents=holds,
                available_cents=balance - holds,
            )
        )
    return summaries


def _period_totals(rows: list[ReportTransaction]) -> tuple[int, int]:
    deposits = sum(r.amount_cents for r in rows if r.type == TransactionType.deposit.value)
    disbursements = sum(r.amount_cents for r in rows if r.type == TransactionType.disbursement.value)
    return deposits, disbursements


async def generate_monthly_trust_report(
    db: AsyncSession, context: TrustContext, start_date: date, end_date: date
) -> MonthlyTrustReport:
    opening = await _balance(db, Transaction.transaction_date < start_date)
    rows = await _transactions_with_balance(
        db, opening, Transaction.transaction_date >= start_date, Transaction.transaction_date <= end_date
    )
    deposits, disbursements = _period_totals(rows)
    closing = opening + deposits - disbursements

    summaries = await _matter_summaries(db, as_of=end_date)
    total_holds = sum(m.active_holds_cents for m in summaries)

    return MonthlyTrustReport(
        firm=firm_info(context),
        start_date=start_date,
        end_date=end_date,
        opening_balance_cents=opening,
        period_deposits_cents=deposits,
        period_disbursements_cents=disbursements,
        closing_balance_cents=closing,
        total_active_holds_cents=total_holds,
        available_balance_cents=closing - total_holds,
        transactions=rows,
        matter_summaries=summaries,
        generated_at=datetime.now(timezone.utc),
    )


async def generate_client_ledger_report(
    db: AsyncSession,
    context: TrustContext,
    client: Client,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> ClientLedgerReport:
    owned = Matter.client_id == client.id
    opening = await _balance(db, owned, Transaction.transaction_date < start_date) if start_date else 0

    conditions = [owned]
    if start_date:
        conditions.append(Transaction.transaction_date >= start_date)
    if end_date:
        conditions.append(Transaction.transaction_date <= end_date)
    rows = await _transactions_with_balance(db, opening, *conditions)
    deposits, disbursements = _period_totals(rows)

    return ClientLedgerReport(
        firm=firm_info(context),
        client_id=client.id,
        client_name=client.name,
        client_email=client.email,
        start_date=start_date,
        end_date=end_date,
        opening_balance_cents=opening,
        period_deposits_cents=deposits,
        period_disbursements_cents=disbursements,
        closing_balance_cents=opening + deposits - disbursements,
        transactions=rows,
        matters=await _matter_summaries(db, as_of=end_date, client_id=client.id, non_zero_only=False),
        generated_at=datetime.now(timezone.utc),
    )


async def generate_reconciliation_report(
    db: AsyncSession,
    context: TrustContext,
    as_of_date: date,
    bank_statement_balance_cents: Optional[int] = None,
) -> ReconciliationReport:
    """Three-way reconciliation: trust ledger, sum of client ledgers, bank statement."""
    trust_ledger_balance = await _balance(db, Transaction.transaction_date <= as_of_date)
    matter_balances = await _matter_summaries(db, as_of=as_of_date)

    per_client: dict[uuid.UUID, ClientBalance] = {}
    for m in matter_balances:
        entry = per_client.setdefault(
            m.client_id, ClientBalance(client_id=m.client_id, client_name=m.client_name, balance_cents=0)
        )
        entry.balance_cents += m.balance_cents
    client_balances = [c for c in per_client.values() if c.balance_cents != 0]
    sum_of_clients = sum(c.balance_cents for c in client_balances)

    ledger_to_client_diff = trust_ledger_balance - sum_of_clients
    ledger_to_bank_diff = None
    if bank_statement_balance_cents is not None:
        ledger_to_bank_diff = trust_ledger_balance - bank_statement_balance_cents

    return ReconciliationReport(
        firm=firm_info(context),
        as_of_date=as_of_date,
        trust_ledger_balance_cents=trust_ledger_balance,
        sum_of_client_ledgers_cents=sum_of_clients,
        bank_balance_cents=bank_statement_balance_cents,
        client_balances=client_balances,
        matter_balances=matter_balances,
        total_active_holds_cents=sum(m.active_holds_cents for m in matter_balances),
        ledger_to_client_diff_cents=ledger_to_client_diff,
        ledger_to_bank_diff_cents=ledger_to_bank_diff,
        is_reconciled=ledger_to_client_diff == 0 and not ledger_to_bank_diff,
        generated_at=datetime.now(timezone.utc),
    )


async def record_report(
    db: AsyncSession,
    report_type: ReportType,
    report_name: str,
    parameters: dict,
    generated_by: Optional[str] = None,
) -> ReportHistory:
    entry = ReportHistory(
        report_type=report_type,
        report_name=report_name,
        parameters=json.dumps(parameters, default=str),
        generated_by=generated_by,
    )
    db.add(entry)
    await db.flush()
    return entry


async def get_report_history(db: AsyncSession, limit: int = 50) -> list[ReportHistory]:
    result = await db.execute(select(ReportHistory).order_by(ReportHistory.generated_at.desc()).limit(limit))
    return list(result.scalars().all())
