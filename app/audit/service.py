import logging
import uuid
from datetime import date, datetime, time, timezone
from typing import Any, Optional

from fastapi import Request
from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.audit.models import AuditLog
from app.common.audit import ACTION_SEVERITY, compute_integrity_hash, dump_details

logger = logging.getLogger(__name__)


def request_origin(request: Request) -> dict[str, Optional[str]]:
    """Caller details recorded on every audit entry."""
    return {
        "ip_address": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
        "user_email": request.headers.get("x-user-email"),
    }


async def create_audit_log(
    db: AsyncSession,
    entity_type: str,
    entity_id: Any,
    action: str,
    details: Optional[dict] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    user_email: Optional[str] = None,
) -> Optional[AuditLog]:
    """Append an audit entry in a savepoint.

    Failures are logged and swallowed; the surrounding request transaction
    is left untouched.
    """
    try:
        async with db.begin_nested():
            prev_result = await db.execute(
                select(AuditLog.integrity_hash).order_by(AuditLog.timestamp.desc()).limit(1)
            )
            previous_hash = prev_result.scalar_one_or_none()

            entry_id = uuid.uuid4()
            now = datetime.now(timezone.utc)
            details_json = dump_details(details)
            integrity_hash = compute_integrity_hash(
                str(entry_id),
                now.isoformat(),
                action,
                entity_type,
                str(entity_id),
                details_json,
                previous_hash,
            )

            entry = AuditLog(
                id=entry_id,
                entity_type=entity_type,
                entity_id=str(entity_id),
                action=action,
                details=details_json,
                user_email=user_email,
                ip_address=ip_address,
                user_agent=user_agent[:500] if user_agent else None,
                severity=ACTION_SEVERITY.get(action, "info"),
                integrity_hash=integrity_hash,
                previous_hash=previous_hash,
                timestamp=now,
            )
            db.add(entry)
        return entry
    except Exception:
        logger.exception("Failed to write audit log for %s %s (%s)", entity_type, entity_id, action)
        return None


def _filters(
    entity_type: Optional[str],
    action: Optional[str],
    search: Optional[str],
    start_date: Optional[date],
    end_date: Optional[date],
) -> list:
    conditions = []
    if entity_type and entity_type != "all":
        conditions.append(AuditLog.entity_type == entity_type)
    if action and action != "all":
        conditions.append(AuditLog.action == action)
    if search:
        pattern = f"%{search}%"
        conditions.append(
            or_(
                AuditLog.entity_id.ilike(pattern),
                AuditLog.details.ilike(pattern),
                AuditLog.user_email.ilike(pattern),
            )
        )
    # Date bounds cover whole days.
    if start_date:
        conditions.append(AuditLog.timestamp >= datetime.combine(start_date, time.min, tzinfo=timezone.utc))
    if end_date:
        conditions.append(AuditLog.timestamp <= datetime.combine(end_date, time.max, tzinfo=timezone.utc))
    return conditions


async def get_audit_logs(
    db: AsyncSession,
    entity_type: Optional[str] = None,
    action: Optional[str] = None,
    search: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: int = 200,
    offset: int = 0,
) -> tuple[list[AuditLog], int]:
    conditions = _filters(entity_type, action, search, start_date, end_date)

    total = (await db.execute(select(func.count(AuditLog.id)).where(*conditions))).scalar_one()
    result = await db.execute(
        select(AuditLog).where(*conditions).order_by(AuditLog.timestamp.desc()).offset(offset).limit(limit)
    )
    return list(result.scalars().all()), total


async def delete_audit_logs(
    db: AsyncSession,
    ids: Optional[list[uuid.UUID]] = None,
    before_date: Optional[datetime] = None,
    delete_all: bool = False,
) -> int:
    """Hard delete audit rows; returns the number removed."""
    stmt = delete(AuditLog)
    if delete_all:
        pass
    elif before_date is not None:
        if before_date.tzinfo is None:
            before_date = before_date.replace(tzinfo=timezone.utc)
        stmt = stmt.where(AuditLog.timestamp <= before_date)
    elif ids:
        stmt = stmt.where(AuditLog.id.in_(ids))
    else:
        raise ValueError("No deletion criteria provided")

    result = await db.execute(stmt.execution_options(synchronize_session=False))
    await db.flush()
    return result.rowcount or 0
