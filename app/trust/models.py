import enum
import uuid
from datetime import date, datetime
from typing import Optional

from sqlalchemy import BigInteger, CheckConstraint, Date, DateTime, Enum, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.common.base_models import GUID, UUIDBase, utcnow


class TransactionType(str, enum.Enum):
    deposit = "deposit"
    disbursement = "disbursement"


class TransactionStatus(str, enum.Enum):
    completed = "completed"


class TransactionSource(str, enum.Enum):
    manual = "manual"
    document_import = "document_import"


class HoldType(str, enum.Enum):
    retainer = "retainer"
    settlement = "settlement"
    escrow = "escrow"
    compliance = "compliance"


class HoldStatus(str, enum.Enum):
    active = "active"
    released = "released"
    cancelled = "cancelled"


class Transaction(UUIDBase):
    """A posted trust ledger line. Rows are never updated or deleted."""

    __tablename__ = "transactions"
    __table_args__ = (CheckConstraint("amount_cents > 0", name="ck_transactions_amount_positive"),)

    matter_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("matters.id"), nullable=False, index=True)
    type: Mapped[TransactionType] = mapped_column(Enum(TransactionType), nullable=False)
    amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    payee: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    payor: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    check_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    reference: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    transaction_date: Mapped[date] = mapped_column(Date, default=date.today, nullable=False, index=True)
    status: Mapped[TransactionStatus] = mapped_column(
        Enum(TransactionStatus), nullable=False, default=TransactionStatus.completed
    )
    source: Mapped[TransactionSource] = mapped_column(
        Enum(TransactionSource), nullable=False, default=TransactionSource.manual
    )
    external_transaction_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    matter = relationship("Matter", lazy="selectin")

    @property
    def matter_name(self) -> Optional[str]:
        return self.matter.name if self.matter else None

    @property
    def matter_number(self) -> Optional[str]:
        return self.matter.matter_number if self.matter else None


class Hold(UUIDBase):
    __tablename__ = "holds"
    __table_args__ = (CheckConstraint("amount_cents > 0", name="ck_holds_amount_positive"),)

    matter_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("matters.id"), nullable=False, index=True)
    # Outstanding amount; only ever decreases.
    amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    type: Mapped[HoldType] = mapped_column(Enum(HoldType), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[HoldStatus] = mapped_column(Enum(HoldStatus), nullable=False, default=HoldStatus.active, index=True)
    external_hold_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    released_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    released_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    release_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    matter = relationship("Matter", lazy="selectin")

    @property
    def matter_name(self) -> Optional[str]:
        return self.matter.name if self.matter else None

    @property
    def matter_number(self) -> Optional[str]:
        return self.matter.matter_number if self.matter else None
