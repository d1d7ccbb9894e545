from typing import Optional

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.common.base_models import TimestampMixin, UUIDBase


class TrustAccountSettings(UUIDBase, TimestampMixin):
    """Firm-wide trust account configuration. At most one row exists."""

    __tablename__ = "trust_account_settings"

    firm_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    firm_logo: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    bank_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    account_number_encrypted: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    routing_number_encrypted: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(2), nullable=True)
    external_trust_account_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    external_operating_account_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
