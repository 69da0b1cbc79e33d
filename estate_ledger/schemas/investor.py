"""
Pydantic schemas for Investor API request / response serialisation.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from estate_ledger.models.investor import KycStatus


class InvestorCreate(BaseModel):
    """Body of ``POST /investors``."""

    full_name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        examples=["Amara Okafor"],
    )
    email: EmailStr = Field(
        ...,
        description="Contact email address (unique across investors)",
        examples=["amara@example.com"],
    )

    @field_validator("full_name")
    @classmethod
    def validate_name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("full_name must not be blank")
        return v.strip()


class InvestorResponse(BaseModel):
    id: UUID
    code: str
    full_name: str
    email: str
    kyc_status: KycStatus
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
