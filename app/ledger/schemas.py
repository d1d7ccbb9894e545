import uuid
from typing import Optional

from pydantic import BaseModel


class LedgerStatusResponse(BaseModel):
    api_key_present: bool
    trust_account_configured: bool
    operating_account_configured: bool
    is_configured: bool
    connection_status: str = "not_tested"
    connection_message: str = ""
    trust_account_balance_cents: Optional[int] = None
    available_balance_cents: Optional[int] = None


class ConnectionTestResponse(BaseModel):
    success: bool
    message: str
    trust_account_balance_cents: Optional[int] = None
    available_balance_cents: Optional[int] = None
    sub_account_count: Optional[int] = None
    total_client_funds_cents: Optional[int] = None
    total_held_cents: Optional[int] = None


class SyncCounts(BaseModel):
    total: int
    synced: int
    not_synced: int


class SyncStatusResponse(BaseModel):
    configured: bool
    message: Optional[str] = None
    matters: Optional[SyncCounts] = None
    transactions: Optional[SyncCounts] = None
    holds: Optional[SyncCounts] = None


class SyncRequest(BaseModel):
    matter_id: Optional[uuid.UUID] = None


class SyncResult(BaseModel):
    matter_id: uuid.UUID
    matter_number: str
    success: bool
    external_account_id: Optional[str] = None
    error: Optional[str] = None


class SyncResponse(BaseModel):
    success: bool
    message: str
    synced: int
    failed: int = 0
    results: list[SyncResult] = []
