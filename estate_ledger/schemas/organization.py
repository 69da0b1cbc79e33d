"""Schemas for issuing organizations."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class OrganizationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, examples=["Harbourside Estates"])

    @field_validator("name")
    @classmethod
    def validate_name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name must not be blank")
        return v.strip()


class OrganizationResponse(BaseModel):
    id: UUID
    code: str
    name: str
    liquidity: Decimal
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
