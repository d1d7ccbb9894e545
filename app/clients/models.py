import enum

from sqlalchemy import Enum, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.common.base_models import TimestampMixin, UUIDBase


class ClientStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"
    archived = "archived"


class Client(UUIDBase, TimestampMixin):
    __tablename__ = "clients"

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[ClientStatus] = mapped_column(Enum(ClientStatus), nullable=False, default=ClientStatus.active)

    # Relationships
    matters = relationship("Matter", back_populates="client", lazy="selectin", order_by="Matter.created_at.desc()")
