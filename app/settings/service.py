from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.common.encryption import decrypt_field, encrypt_field
from app.common.money import mask_account_number
from app.settings.models import TrustAccountSettings
from app.settings.schemas import SettingsResponse, SettingsUpdate


@dataclass(frozen=True)
class TrustContext:
    """Read-only snapshot of the firm settings, taken once per request."""

    firm_name: Optional[str] = None
    firm_logo: Optional[str] = None
    bank_name: Optional[str] = None
    account_number_masked: Optional[str] = None
    state: Optional[str] = None
    external_trust_account_id: Optional[str] = None
    external_operating_account_id: Optional[str] = None

    @property
    def firm_info(self) -> dict:
        return {
            "firm_name": self.firm_name,
            "firm_logo": self.firm_logo,
            "bank_name": self.bank_name,
            "account_number": self.account_number_masked,
            "state": self.state,
        }


async def get_settings_row(db: AsyncSession) -> Optional[TrustAccountSettings]:
    result = await db.execute(select(TrustAccountSettings).order_by(TrustAccountSettings.created_at).limit(1))
    return result.scalar_one_or_none()


async def load_trust_context(db: AsyncSession) -> TrustContext:
    row = await get_settings_row(db)
    if row is None:
        return TrustContext()
    return TrustContext(
        firm_name=row.firm_name,
        firm_logo=row.firm_logo,
        bank_name=row.bank_name,
        account_number_masked=mask_account_number(decrypt_field(row.account_number_encrypted)),
        state=row.state,
        external_trust_account_id=row.external_trust_account_id,
        external_operating_account_id=row.external_operating_account_id,
    )


def to_response(row: TrustAccountSettings) -> SettingsResponse:
    return SettingsResponse(
        id=row.id,
        firm_name=row.firm_name,
        firm_logo=row.firm_logo,
        bank_name=row.bank_name,
        account_number=mask_account_number(decrypt_field(row.account_number_encrypted)),
        routing_number=mask_account_number(decrypt_field(row.routing_number_encrypted)),
        state=row.state,
        external_trust_account_id=row.external_trust_account_id,
        external_operating_account_id=row.external_operating_account_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


async def upsert_settings(db: AsyncSession, data: SettingsUpdate) -> tuple[TrustAccountSettings, list[str]]:
    """Create or update the settings row; returns it with the names of the fields changed.

    Bank numbers are only replaced when a new value is supplied.
    """
    row = await get_settings_row(db)
    if row is None:
        row = TrustAccountSettings()
        db.add(row)

    values = data.model_dump(exclude_unset=True)
    changed = []
    for field in ("account_number", "routing_number"):
        value = values.pop(field, None)
        if value:
            setattr(row, f"{field}_encrypted", encrypt_field(value))
            changed.append(field)
    for field, value in values.items():
        if getattr(row, field) != value:
            setattr(row, field, value)
            changed.append(field)

    await db.flush()
    await db.refresh(row)
    return row, changed
