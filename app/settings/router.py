from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.audit.service import create_audit_log, request_origin
from app.database import get_db
from app.settings.schemas import SettingsResponse, SettingsUpdate
from app.settings.service import get_settings_row, to_response, upsert_settings

router = APIRouter()


@router.get("", response_model=Optional[SettingsResponse])
async def get_trust_settings(db: Annotated[AsyncSession, Depends(get_db)]):
    row = await get_settings_row(db)
    if row is None:
        return None
    return to_response(row)


@router.put("", response_model=SettingsResponse)
async def update_trust_settings(
    data: SettingsUpdate,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    row, changed = await upsert_settings(db, data)
    # Field names only; bank numbers never reach the audit log.
    await create_audit_log(
        db, "settings", row.id, "settings_change",
        details={"fields": changed},
        **request_origin(request),
    )
    return to_response(row)
