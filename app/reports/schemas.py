import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, model_validator

from app.reports.models import ReportType


class FirmInfo(BaseModel):
    firm_name: str = "Law Firm"
    bank_name: Optional[str] = None
    account_number: Optional[str] = None  # masked
    state: Optional[str] = None


class DateRangeRequest(BaseModel):
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def check_range(self) -> "DateRangeRequest":
        if self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date")
        return self


class ClientLedgerRequest(BaseModel):
    client_id: uuid.UUID
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @model_validator(mode="after")
    def check_range(self) -> "ClientLedgerRequest":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date")
        return self


class ReconciliationRequest(BaseModel):
    as_of_date: Optional[date] = None
    bank_statement_balance_cents: Optional[int] = None


class ReportTransaction(BaseModel):
    id: uuid.UUID
    transaction_date: date
    type: str
    amount_cents: int
    description: str
    payee: Optional[str] = None
    payor: Optional[str] = None
    check_number: Optional[str] = None
    matter_id: uuid.UUID
    matter_name: str
    matter_number: str
    client_name: str
    running_balance_cents: int


class MatterSummary(BaseModel):
    matter_id: uuid.UUID
    matter_name: str
    matter_number: str
    client_id: uuid.UUID
    client_name: str
    status: str
    balance_cents: int
    active_holds_cents: int
    available_cents: int


class ClientBalance(BaseModel):
    client_id: uuid.UUID
    client_name: str
    balance_cents: int


class MonthlyTrustReport(BaseModel):
    firm: FirmInfo
    start_date: date
    end_date: date
    opening_balance_cents: int
    period_deposits_cents: int
    period_disbursements_cents: int
    closing_balance_cents: int
    total_active_holds_cents: int
    available_balance_cents: int
    transactions: list[ReportTransaction]
    matter_summaries: list[MatterSummary]
    generated_at: datetime


class ClientLedgerReport(BaseModel):
    firm: FirmInfo
    client_id: uuid.UUID
    client_name: str
    client_email: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    opening_balance_cents: int
    period_deposits_cents: int
    period_disbursements_cents: int
    closing_balance_cents: int
    transactions: list[ReportTransaction]
    matters: list[MatterSummary]
    generated_at: datetime


class ReconciliationReport(BaseModel):
    firm: FirmInfo
    as_of_date: date
    trust_ledger_balance_cents: int
    sum_of_client_ledgers_cents: int
    bank_balance_cents: Optional[int] = None
    client_balances: list[ClientBalance]
    matter_balances: list[MatterSummary]
    total_active_holds_cents: int
    ledger_to_client_diff_cents: int
    ledger_to_bank_diff_cents: Optional[int] = None
    is_reconciled: bool
    generated_at: datetime


class ReportHistoryResponse(BaseModel):
    id: uuid.UUID
    report_type: ReportType
    report_name: str
    parameters: Optional[str]
    status: str
    generated_by: Optional[str]
    generated_at: datetime

    model_config = {"from_attributes": True}
