"""Pydantic schemas for API request/response validation (camelCase on the wire)"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from quote_engine.config import settings
from quote_engine.domain.models import (
    ChargeStatus,
    ContractStatus,
    EditField,
    LeadStage,
    PaymentOption,
    Plan,
    PriceField,
    QuoteStatus,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ORMModel(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# Leads


class VehicleSchema(ORMModel):
    year: int = Field(..., ge=1900)
    make: str = Field(..., min_length=1)
    model: str = Field(..., min_length=1)
    trim: Optional[str] = None
    vin: Optional[str] = None
    odometer: int = Field(..., ge=0)


class LeadCreateRequest(CamelModel):
    """Request body for POST /v1/leads"""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    zip: Optional[str] = None
    state: Optional[str] = None
    source: Optional[str] = None
    vehicle: Optional[VehicleSchema] = None


class LeadResponse(ORMModel):
    id: uuid.UUID
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    zip: Optional[str] = None
    state: Optional[str] = None
    stage: LeadStage
    vehicle: Optional[VehicleSchema] = None
    policy_id: Optional[uuid.UUID] = None
    created_at: datetime


class StageUpdateRequest(CamelModel):
    stage: LeadStage


class NoteRequest(CamelModel):
    content: str = Field(..., min_length=1, max_length=5000)


class NoteResponse(ORMModel):
    id: uuid.UUID
    lead_id: uuid.UUID
    content: str
    created_at: datetime


# Quotes


class QuoteDraftSchema(CamelModel):
    plan: Plan = Plan.BASIC
    deductible_cents: int = 0
    term_months: int = Field(36, ge=0)
    price_total_cents: Optional[int] = None
    price_monthly_cents: Optional[int] = None
    expiration_miles: Optional[int] = None
    payment_option: PaymentOption = PaymentOption.MONTHLY
    last_edited_price_field: PriceField = PriceField.TOTAL


class PriceEditSchema(CamelModel):
    field: EditField
    value: Union[int, str] = Field(
        ...,
        description="Raw user input as a string (dollars for money fields), or an already-parsed integer "
        "(cents for money fields)",
    )


class ReconcileRequest(CamelModel):
    """Request body for POST /v1/quotes/reconcile"""

    draft: QuoteDraftSchema
    edit: PriceEditSchema


class ReconcileResponse(CamelModel):
    draft: QuoteDraftSchema
    consistent: bool


class QuoteCreateRequest(CamelModel):
    """Request body for POST /v1/leads/{lead_id}/quotes (money in dollars)"""

    plan: Plan
    deductible: Decimal = Field(..., ge=0)
    term_months: int = Field(default_factory=lambda: settings.default_term_months, gt=0)
    price_monthly: Decimal = Field(..., ge=0)
    payment_option: Optional[PaymentOption] = None
    expiration_miles: Optional[int] = Field(None, ge=0)


class QuoteResponse(ORMModel):
    id: uuid.UUID
    lead_id: uuid.UUID
    plan: Plan
    deductible_cents: int
    term_months: int
    price_monthly_cents: int
    price_total_cents: int
    price_monthly: str
    price_total: str
    status: QuoteStatus
    breakdown: Optional[Dict[str, Any]] = None
    valid_until: Optional[datetime] = None
    created_at: datetime


class QuoteListResponse(CamelModel):
    lead_id: uuid.UUID
    quotes: List[QuoteResponse]


class ContractStatusResponse(CamelModel):
    quote_id: uuid.UUID
    contract_id: Optional[uuid.UUID] = None
    status: Optional[ContractStatus] = None
    signed_at: Optional[datetime] = None


# Conversion / policies


def _iso_date(value: Any) -> Any:
    # Accept full ISO-8601 timestamps as well as plain dates
    if isinstance(value, str) and "T" in value:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    if isinstance(value, datetime):
        return value.date()
    return value


class ConversionRequest(CamelModel):
    """Request body for POST /v1/leads/{lead_id}/convert (money in dollars)"""

    package: Optional[str] = None
    policy_start_date: Optional[date] = None
    expiration_date: Optional[date] = None
    expiration_date_manually_set: Optional[bool] = None
    expiration_miles: Optional[int] = Field(None, ge=0)
    total_premium: Optional[Decimal] = None
    down_payment: Optional[Decimal] = None
    monthly_payment: Optional[Decimal] = None
    total_payments: Optional[int] = None
    deductible: Optional[Decimal] = None
    payment_option: Optional[PaymentOption] = None

    @field_validator("policy_start_date", "expiration_date", mode="before")
    @classmethod
    def parse_iso_dates(cls, value: Any) -> Any:
        return _iso_date(value)


class PolicyResponse(ORMModel):
    id: uuid.UUID
    lead_id: uuid.UUID
    package: Optional[str] = None
    policy_start_date: date
    expiration_date: Optional[date] = None
    expiration_date_manually_set: bool
    expiration_miles: Optional[int] = None
    deductible_cents: Optional[int] = None
    total_premium_cents: Optional[int] = None
    down_payment_cents: Optional[int] = None
    monthly_payment_cents: Optional[int] = None
    total_payments: Optional[int] = None
    payment_option: PaymentOption
    created_at: datetime


class ConversionResponse(CamelModel):
    policy: PolicyResponse
    created: bool


# Contracts


class ContractCreateRequest(CamelModel):
    """Request body for POST /v1/leads/{lead_id}/contracts"""

    quote_id: uuid.UUID
    file_name: Optional[str] = Field(None, max_length=255)
    file_type: Optional[str] = Field(None, max_length=120)
    file_data: Optional[str] = None
    use_placeholder: bool = False


class ContractResponse(ORMModel):
    """Contract view; the captured card number and CVV are never included"""

    id: uuid.UUID
    lead_id: uuid.UUID
    quote_id: uuid.UUID
    status: ContractStatus
    file_name: str
    file_type: Optional[str] = None
    file_size: Optional[int] = None
    uses_placeholder: bool
    signature_name: Optional[str] = None
    signature_email: Optional[str] = None
    signed_at: Optional[datetime] = None
    payment_method: Optional[str] = None
    payment_last_four: Optional[str] = None
    payment_exp_month: Optional[int] = None
    payment_exp_year: Optional[int] = None
    billing_address_line1: Optional[str] = None
    billing_address_line2: Optional[str] = None
    billing_city: Optional[str] = None
    billing_state: Optional[str] = None
    billing_postal_code: Optional[str] = None
    billing_country: Optional[str] = None
    shipping_address_line1: Optional[str] = None
    shipping_address_line2: Optional[str] = None
    shipping_city: Optional[str] = None
    shipping_state: Optional[str] = None
    shipping_postal_code: Optional[str] = None
    shipping_country: Optional[str] = None
    created_at: datetime


class ContractSignRequest(CamelModel):
    """Request body for POST /v1/contracts/{contract_id}/sign; field rules live in the domain"""

    signature_name: Optional[str] = None
    signature_email: Optional[str] = None
    consent: bool = False
    payment_method: Optional[str] = None
    payment_card_number: Optional[str] = None
    payment_cvv: Optional[str] = None
    payment_exp_month: Optional[int] = None
    payment_exp_year: Optional[int] = None
    payment_notes: Optional[str] = None
    billing_address_line1: Optional[str] = None
    billing_address_line2: Optional[str] = None
    billing_city: Optional[str] = None
    billing_state: Optional[str] = None
    billing_postal_code: Optional[str] = None
    billing_country: Optional[str] = None
    shipping_same_as_billing: bool = False
    shipping_address_line1: Optional[str] = None
    shipping_address_line2: Optional[str] = None
    shipping_city: Optional[str] = None
    shipping_state: Optional[str] = None
    shipping_postal_code: Optional[str] = None
    shipping_country: Optional[str] = None


class SignResponse(CamelModel):
    contract: ContractResponse
    policy: PolicyResponse
    policy_created: bool


# Billing


class PaymentProfileRequest(CamelModel):
    """Request body for PUT /v1/policies/{policy_id}/payment-profile"""

    payment_method: Optional[str] = Field(None, max_length=120)
    account_name: Optional[str] = Field(None, max_length=120)
    account_identifier: Optional[str] = Field(None, max_length=120)
    card_brand: Optional[str] = Field(None, max_length=40)
    card_last_four: Optional[str] = None
    card_expiry_month: Optional[int] = None
    card_expiry_year: Optional[int] = None
    billing_zip: Optional[str] = None
    autopay_enabled: bool
    notes: Optional[str] = Field(None, max_length=2000)


class PaymentProfileResponse(ORMModel):
    policy_id: uuid.UUID
    payment_method: Optional[str] = None
    account_name: Optional[str] = None
    account_identifier: Optional[str] = None
    card_brand: Optional[str] = None
    card_last_four: Optional[str] = None
    card_expiry_month: Optional[int] = None
    card_expiry_year: Optional[int] = None
    billing_zip: Optional[str] = None
    autopay_enabled: bool
    notes: Optional[str] = None
    updated_at: datetime


class ChargeCreateRequest(CamelModel):
    """Charge reported by the external billing collaborator"""

    description: str = Field(..., min_length=1)
    amount_cents: int
    status: ChargeStatus = ChargeStatus.PENDING
    charged_at: Optional[datetime] = None
    reference: Optional[str] = Field(None, max_length=120)
    notes: Optional[str] = None


class ChargeStatusUpdate(CamelModel):
    status: ChargeStatus


class ChargeResponse(ORMModel):
    id: uuid.UUID
    policy_id: uuid.UUID
    description: str
    amount_cents: int
    amount: str
    status: ChargeStatus
    charged_at: datetime
    reference: Optional[str] = None
    notes: Optional[str] = None


class ChargeListResponse(CamelModel):
    policy_id: uuid.UUID
    charges: List[ChargeResponse]
