import csv
import io
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.audit.service import create_audit_log, request_origin
from app.clients.service import get_client
from app.database import get_db
from app.dependencies import TrustContextDep
from app.reports.models import ReportType
from app.reports.schemas import (
    ClientLedgerReport,
    ClientLedgerRequest,
    DateRangeRequest,
    MonthlyTrustReport,
    ReconciliationReport,
    ReconciliationRequest,
    ReportHistoryResponse,
)
from app.reports.service import (
    generate_client_ledger_report,
    generate_monthly_trust_report,
    generate_reconciliation_report,
    get_report_history,
    record_report,
)

router = APIRouter()

CSV_FIELDS = [
    "transaction_date",
    "matter_number",
    "matter_name",
    "client_name",
    "type",
    "description",
    "payor",
    "payee",
    "check_number",
    "amount_cents",
    "running_balance_cents",
]


def _check_range(start_date: date, end_date: date) -> None:
    if start_date > end_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start_date must be on or before end_date",
        )


@router.get("/monthly-trust", response_model=MonthlyTrustReport)
async def preview_monthly_trust(
    start_date: date,
    end_date: date,
    db: Annotated[AsyncSession, Depends(get_db)],
    context: TrustContextDep,
):
    _check_range(start_date, end_date)
    return await generate_monthly_trust_report(db, context, start_date, end_date)


@router.post("/monthly-trust", response_model=MonthlyTrustReport)
async def create_monthly_trust(
    data: DateRangeRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    context: TrustContextDep,
):
    report = await generate_monthly_trust_report(db, context, data.start_date, data.end_date)
    origin = request_origin(request)
    entry = await record_report(
        db,
        ReportType.monthly_trust,
        f"Monthly Trust Report {data.start_date} to {data.end_date}",
        data.model_dump(),
        origin["user_email"],
    )
    await create_audit_log(
        db, "report", entry.id, "export",
        details={
            "report_type": ReportType.monthly_trust.value,
            "start_date": data.start_date,
            "end_date": data.end_date,
            "transaction_count": len(report.transactions),
            "opening_balance_cents": report.opening_balance_cents,
            "closing_balance_cents": report.closing_balance_cents,
        },
        **origin,
    )
    return report


@router.post("/client-ledger", response_model=ClientLedgerReport)
async def create_client_ledger(
    data: ClientLedgerRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    context: TrustContextDep,
):
    client = await get_client(db, data.client_id)
    if client is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")

    report = await generate_client_ledger_report(db, context, client, data.start_date, data.end_date)
    origin = request_origin(request)
    entry = await record_report(
        db, ReportType.client_ledger, f"Client Ledger - {client.name}", data.model_dump(), origin["user_email"]
    )
    await create_audit_log(
        db, "report", entry.id, "export",
        details={
            "report_type": ReportType.client_ledger.value,
            "client_id": str(client.id),
            "client_name": client.name,
            "closing_balance_cents": report.closing_balance_cents,
        },
        **origin,
    )
    return report


@router.post("/reconciliation", response_model=ReconciliationReport)
async def create_reconciliation(
    data: ReconciliationRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    context: TrustContextDep,
):
    as_of = data.as_of_date or date.today()
    report = await generate_reconciliation_report(db, context, as_of, data.bank_statement_balance_cents)
    origin = request_origin(request)
    entry = await record_report(
        db,
        ReportType.reconciliation,
        f"Three-Way Reconciliation as of {as_of}",
        {"as_of_date": as_of, "bank_statement_balance_cents": data.bank_statement_balance_cents},
        origin["user_email"],
    )
    await create_audit_log(
        db, "report", entry.id, "export",
        details={
            "report_type": ReportType.reconciliation.value,
            "as_of_date": as_of,
            "trust_ledger_balance_cents": report.trust_ledger_balance_cents,
            "sum_of_client_ledgers_cents": report.sum_of_client_ledgers_cents,
            "bank_balance_cents": report.bank_balance_cents,
            "is_reconciled": report.is_reconciled,
        },
        **origin,
    )
    return report


@router.get("/history", response_model=list[ReportHistoryResponse])
async def report_history(
    db: Annotated[AsyncSession, Depends(get_db)],
    limit: int = Query(default=50, ge=1, le=500),
):
    return await get_report_history(db, limit)


@router.get("/export/monthly-trust")
async def export_monthly_trust(
    start_date: date,
    end_date: date,
    db: Annotated[AsyncSession, Depends(get_db)],
    context: TrustContextDep,
):
    _check_range(start_date, end_date)
    report = await generate_monthly_trust_report(db, context, start_date, end_date)

    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=CSV_FIELDS, extrasaction="ignore")
    writer.writeheader()
    for row in report.transactions:
        writer.writerow(row.model_dump())

    output.seek(0)
    filename = f"monthly-trust-{start_date}-to-{end_date}.csv"
    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
