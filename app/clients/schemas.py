import uuid
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from app.clients.models import ClientStatus


class ClientCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=50)
    address: str | None = None
    notes: str | None = None
    status: ClientStatus = ClientStatus.active


class ClientUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=50)
    address: str | None = None
    notes: str | None = None
    status: ClientStatus | None = None


class ClientResponse(BaseModel):
    id: uuid.UUID
    name: str
    email: str | None
    phone: str | None
    address: str | None
    notes: str | None
    status: ClientStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ClientMatterSummary(BaseModel):
    id: uuid.UUID
    name: str
    matter_number: str
    status: str
    balance_cents: int
    available_cents: int


class ClientDetailResponse(ClientResponse):
    matters: list[ClientMatterSummary] = []
    total_balance_cents: int = 0
