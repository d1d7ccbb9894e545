import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from app.clients.schemas import ClientCreate
from app.matters.models import MatterStatus
from app.trust.schemas import HoldResponse, TransactionResponse


class MatterCreate(BaseModel):
    client_id: uuid.UUID | None = None
    new_client: ClientCreate | None = None
    name: str = Field(min_length=1, max_length=500)
    description: str | None = Field(default=None, max_length=2000)
    status: MatterStatus = MatterStatus.open
    practice_area: str | None = Field(default=None, max_length=255)
    responsible_attorney: str | None = Field(default=None, max_length=255)
    open_date: date | None = None

    @model_validator(mode="after")
    def check_client(self) -> "MatterCreate":
        if self.client_id is None and self.new_client is None:
            raise ValueError("Either client_id or new_client must be provided")
        if self.status == MatterStatus.closed:
            raise ValueError("A matter cannot be created closed")
        return self


class MatterUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=500)
    description: str | None = Field(default=None, max_length=2000)
    status: MatterStatus | None = None
    practice_area: str | None = Field(default=None, max_length=255)
    responsible_attorney: str | None = Field(default=None, max_length=255)


class MatterResponse(BaseModel):
    id: uuid.UUID
    client_id: uuid.UUID
    name: str
    matter_number: str
    description: str | None
    status: MatterStatus
    practice_area: str | None
    responsible_attorney: str | None
    open_date: date
    close_date: date | None
    external_account_id: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class MatterListItem(MatterResponse):
    client_name: Optional[str] = None
    balance_cents: int = 0
    held_cents: int = 0
    available_cents: int = 0


class MatterDetailResponse(MatterListItem):
    deposits_cents: int = 0
    disbursements_cents: int = 0
    transactions: list[TransactionResponse] = []
    holds: list[HoldResponse] = []
