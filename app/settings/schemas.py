import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class SettingsUpdate(BaseModel):
    firm_name: Optional[str] = Field(default=None, max_length=255)
    firm_logo: Optional[str] = None
    bank_name: Optional[str] = Field(default=None, max_length=255)
    account_number: Optional[str] = Field(default=None, max_length=34)
    routing_number: Optional[str] = Field(default=None, max_length=9)
    state: Optional[str] = Field(default=None, max_length=2)
    external_trust_account_id: Optional[str] = Field(default=None, max_length=255)
    external_operating_account_id: Optional[str] = Field(default=None, max_length=255)

    @field_validator("state")
    @classmethod
    def upper_state(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v else v


class SettingsResponse(BaseModel):
    id: uuid.UUID
    firm_name: Optional[str]
    firm_logo: Optional[str]
    bank_name: Optional[str]
    account_number: Optional[str]
    routing_number: Optional[str]
    state: Optional[str]
    external_trust_account_id: Optional[str]
    external_operating_account_id: Optional[str]
    created_at: datetime
    updated_at: datetime
