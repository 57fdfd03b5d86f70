"""Pydantic models validating transaction input."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class TransactionCreate(BaseModel):
    property_address: str = Field(..., min_length=1)
    contract_price: Decimal = Field(..., ge=0)
    total_service_fee: Decimal = Field(..., ge=0)
    listing_agent_id: str = Field(..., min_length=1)
    selling_agent_id: str = Field(..., min_length=1)

    @field_validator("property_address")
    @classmethod
    def address_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("property_address must not be blank")
        return value


class TransactionDetailsUpdate(BaseModel):
    """Descriptive fields that may be edited after creation. Never the status."""
    property_address: Optional[str] = Field(None, min_length=1)
    contract_price: Optional[Decimal] = Field(None, ge=0)
    total_service_fee: Optional[Decimal] = Field(None, ge=0)

    @field_validator("property_address")
    @classmethod
    def address_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("property_address must not be blank")
        return value


class AgentCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = ""

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value
