from datetime import date
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.audit.schemas import (
    AuditDeleteRequest,
    AuditDeleteResponse,
    AuditListResponse,
    AuditLogResponse,
    AuditPagination,
    AuditStats,
)
from app.audit.service import create_audit_log, delete_audit_logs, get_audit_logs, request_origin
from app.database import get_db

router = APIRouter()


@router.get("", response_model=AuditListResponse)
async def list_audit_logs(
    db: Annotated[AsyncSession, Depends(get_db)],
    entity_type: Optional[str] = None,
    action: Optional[str] = None,
    search: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: int = Query(default=200, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
):
    logs, total = await get_audit_logs(db, entity_type, action, search, start_date, end_date, limit, offset)
    items = [AuditLogResponse.model_validate(log) for log in logs]
    stats = AuditStats(
        total=total,
        creates=sum(1 for log in logs if log.action == "create"),
        updates=sum(1 for log in logs if log.action == "update"),
        deletes=sum(1 for log in logs if log.action == "delete"),
    )
    pagination = AuditPagination(total=total, limit=limit, offset=offset, has_more=offset + len(logs) < total)
    return AuditListResponse(logs=items, stats=stats, pagination=pagination)


@router.delete("", response_model=AuditDeleteResponse)
async def purge_audit_logs(
    data: AuditDeleteRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    try:
        count = await delete_audit_logs(db, data.ids, data.before_date, data.delete_all)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    await create_audit_log(
        db, "audit_log", "bulk", "audit_purge",
        details={
            "count": count,
            "delete_all": data.delete_all,
            "before_date": data.before_date,
            "ids": [str(i) for i in data.ids] if data.ids else None,
        },
        **request_origin(request),
    )
    return AuditDeleteResponse(message="Audit logs deleted", count=count)
