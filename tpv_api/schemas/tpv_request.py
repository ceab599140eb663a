"""Pydantic schemas for the TPV request form and stored rows."""

from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class TPVRequestIn(BaseModel):
    """Inbound form submission (camelCase on the wire).

    Every field is optional here; required-field checks happen in the call
    initiator so the caller gets a single descriptive error message.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    agent_id: str | None = None
    assistant_id: str | None = None
    phone_number_id: str | None = None

    first_name: str | None = None
    last_name: str | None = None
    customer_name: str | None = None
    company_name: str | None = None

    address: str | None = None
    city: str | None = None
    province: str | None = None
    postal_code: str | None = None

    phone_number: str | None = None
    email: str | None = None

    products: list[str] | str | None = None
    sales_price: str | float | None = None
    payment_option: str | None = None
    finance_company: str | None = None
    interest_rate: str | float | None = None
    promotional_term: str | int | None = None
    amortization: str | int | None = None
    monthly_payment: str | float | None = None


class TPVRequestOut(BaseModel):
    """Response schema for stored TPV requests."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    vapi_call_id: str | None = None
    agent_id: str
    first_name: str | None = None
    last_name: str | None = None
    customer_name: str
    company_name: str | None = None
    customer_address: str
    city: str | None = None
    province: str | None = None
    postal_code: str | None = None
    customer_phone: str
    email: str | None = None
    products: str | None = None
    sales_price: str
    payment_option: str | None = None
    finance_company: str | None = None
    interest_rate: str | None = None
    promotional_term: str | None = None
    amortization: str | None = None
    monthly_payment: str | None = None
    status: str
    ended_reason: str | None = None
    call_duration_seconds: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
