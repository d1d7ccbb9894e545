import enum
import uuid
from datetime import date

from sqlalchemy import Date, Enum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.common.base_models import GUID, TimestampMixin, UUIDBase


class MatterStatus(str, enum.Enum):
    open = "open"
    pending = "pending"
    closed = "closed"


class Matter(UUIDBase, TimestampMixin):
    __tablename__ = "matters"

    client_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("clients.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    matter_number: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[MatterStatus] = mapped_column(Enum(MatterStatus), nullable=False, default=MatterStatus.open)
    practice_area: Mapped[str | None] = mapped_column(String(255), nullable=True)
    responsible_attorney: Mapped[str | None] = mapped_column(String(255), nullable=True)
    open_date: Mapped[date] = mapped_column(Date, default=date.today, nullable=False)
    close_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    # Sub-account id in the external trust ledger, when mirrored
    external_account_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)

    # Relationships
    client = relationship("Client", back_populates="matters", lazy="selectin")

    @property
    def is_closed(self) -> bool:
        return self.status == MatterStatus.closed
