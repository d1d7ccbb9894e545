import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class AuditLogResponse(BaseModel):
    id: uuid.UUID
    entity_type: str
    entity_id: str
    action: str
    details: Optional[str]
    user_email: Optional[str]
    ip_address: Optional[str]
    user_agent: Optional[str]
    severity: str
    integrity_hash: str
    previous_hash: Optional[str]
    timestamp: datetime

    model_config = {"from_attributes": True}


class AuditStats(BaseModel):
    total: int
    creates: int
    updates: int
    deletes: int


class AuditPagination(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class AuditListResponse(BaseModel):
    logs: list[AuditLogResponse]
    stats: AuditStats
    pagination: AuditPagination


class AuditDeleteRequest(BaseModel):
    ids: Optional[list[uuid.UUID]] = None
    before_date: Optional[datetime] = None
    delete_all: bool = False


class AuditDeleteResponse(BaseModel):
    message: str
    count: int
