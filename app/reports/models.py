import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Enum, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from app.common.base_models import UUIDBase, utcnow


class ReportType(str, enum.Enum):
    monthly_trust = "monthly_trust"
    client_ledger = "client_ledger"
    reconciliation = "reconciliation"


class ReportHistory(UUIDBase):
    __tablename__ = "report_history"

    report_type: Mapped[ReportType] = mapped_column(Enum(ReportType), nullable=False, index=True)
    report_name: Mapped[str] = mapped_column(String(255), nullable=False)
    parameters: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="completed")
    generated_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    generated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False, index=True
    )
