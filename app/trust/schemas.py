import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.trust.balance import MAX_AMOUNT_CENTS
from app.trust.models import HoldStatus, HoldType, TransactionSource, TransactionStatus, TransactionType


class TransactionCreate(BaseModel):
    matter_id: uuid.UUID
    type: TransactionType
    amount_cents: int = Field(gt=0, le=MAX_AMOUNT_CENTS)
    description: str = Field(min_length=1, max_length=500)
    payee: Optional[str] = Field(default=None, max_length=255)
    payor: Optional[str] = Field(default=None, max_length=255)
    check_number: Optional[str] = Field(default=None, max_length=50)
    reference: Optional[str] = Field(default=None, max_length=100)
    transaction_date: Optional[date] = None


class TransactionResponse(BaseModel):
    id: uuid.UUID
    matter_id: uuid.UUID
    type: TransactionType
    amount_cents: int
    description: str
    payee: Optional[str]
    payor: Optional[str]
    check_number: Optional[str]
    reference: Optional[str]
    transaction_date: date
    status: TransactionStatus
    source: TransactionSource
    external_transaction_id: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class TransactionListItem(TransactionResponse):
    matter_name: Optional[str] = None
    matter_number: Optional[str] = None
    client_id: Optional[uuid.UUID] = None
    client_name: Optional[str] = None
    running_balance_cents: int


class HoldCreate(BaseModel):
    matter_id: uuid.UUID
    amount_cents: int = Field(gt=0, le=MAX_AMOUNT_CENTS)
    type: HoldType
    description: str = Field(min_length=1, max_length=500)


class HoldUpdate(BaseModel):
    description: Optional[str] = Field(default=None, min_length=1, max_length=500)
    status: Optional[HoldStatus] = None
    release_reason: Optional[str] = None
    released_by: Optional[str] = Field(default=None, max_length=255)


class HoldReleaseRequest(BaseModel):
    release_reason: str = Field(min_length=1)
    released_by: Optional[str] = Field(default=None, max_length=255)
    release_amount_cents: Optional[int] = None


class HoldResponse(BaseModel):
    id: uuid.UUID
    matter_id: uuid.UUID
    amount_cents: int
    type: HoldType
    description: str
    status: HoldStatus
    external_hold_id: Optional[str]
    created_at: datetime
    released_at: Optional[datetime]
    released_by: Optional[str]
    release_reason: Optional[str]
    matter_name: Optional[str] = None
    matter_number: Optional[str] = None

    model_config = {"from_attributes": True}


class HoldReleaseResponse(HoldResponse):
    released_cents: int
    remaining_cents: int
    is_partial: bool
