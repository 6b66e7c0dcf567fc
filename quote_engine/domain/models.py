"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional, Union


class Plan(str, Enum):
    BASIC = "basic"
    SILVER = "silver"
    GOLD = "gold"


class PaymentOption(str, Enum):
    ONE_TIME = "one-time"
    MONTHLY = "monthly"


class PriceField(str, Enum):
    """Which price field the user touched last (the ground truth)"""

    TOTAL = "total"
    MONTHLY = "monthly"


class EditField(str, Enum):
    TOTAL = "total"
    MONTHLY = "monthly"
    TERM = "term"
    DEDUCTIBLE = "deductible"
    EXPIRATION_MILES = "expirationMiles"


class LeadStage(str, Enum):
    NEW = "new"
    CONTACTED = "contacted"
    QUOTED = "quoted"
    FUNDED = "funded"
    # Dispositions: terminal, not ordered relative to the pipeline
    CALLBACK = "callback"
    LEFT_MESSAGE = "left-message"
    NO_CONTACT = "no-contact"
    WRONG_NUMBER = "wrong-number"
    FAKE_LEAD = "fake-lead"
    NOT_INTERESTED = "not-interested"
    DUPLICATE_LEAD = "duplicate-lead"
    DNC = "dnc"


class QuoteStatus(str, Enum):
    OPEN = "open"
    ACCEPTED = "accepted"
    EXPIRED = "expired"


class ContractStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    SIGNED = "signed"
    VOID = "void"


class ChargeStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


@dataclass(frozen=True)
class QuoteDraft:
    """Client-held quote form state; replaced, never mutated, by the reconciler"""

    plan: Plan = Plan.BASIC
    deductible_cents: int = 0
    term_months: int = 36
    price_total_cents: Optional[int] = None
    price_monthly_cents: Optional[int] = None
    expiration_miles: Optional[int] = None
    payment_option: PaymentOption = PaymentOption.MONTHLY
    last_edited_price_field: PriceField = PriceField.TOTAL


@dataclass(frozen=True)
class PriceEdit:
    """Single-field edit event; value is raw user input or an already-parsed int"""

    field: EditField
    value: Union[str, int]


@dataclass(frozen=True)
class QuotePrices:
    price_monthly_cents: int
    price_total_cents: int


@dataclass
class PolicyFormInput:
    """Operator-supplied conversion fields, money already in cents"""

    package: Optional[str] = None
    policy_start_date: Optional[date] = None
    expiration_date: Optional[date] = None
    expiration_date_manually_set: Optional[bool] = None
    expiration_miles: Optional[int] = None
    deductible_cents: Optional[int] = None
    total_premium_cents: Optional[int] = None
    down_payment_cents: Optional[int] = None
    monthly_payment_cents: Optional[int] = None
    total_payments: Optional[int] = None
    payment_option: Optional[PaymentOption] = None


@dataclass
class PolicyTerms:
    """Fully derived policy values ready for persistence"""

    package: Optional[str]
    policy_start_date: date
    expiration_date: Optional[date]
    expiration_date_manually_set: bool
    expiration_miles: Optional[int]
    deductible_cents: Optional[int]
    total_premium_cents: Optional[int]
    down_payment_cents: Optional[int]
    monthly_payment_cents: Optional[int]
    total_payments: Optional[int]
    payment_option: PaymentOption


@dataclass
class Address:
    line1: Optional[str] = None
    line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None


@dataclass
class SignatureInput:
    """Raw signing form submitted by the customer"""

    signature_name: Optional[str]
    consent: bool
    payment_card_number: Optional[str]
    payment_cvv: Optional[str]
    payment_exp_month: Optional[int]
    payment_exp_year: Optional[int]
    billing: Address
    shipping: Address
    shipping_same_as_billing: bool = False
    signature_email: Optional[str] = None
    payment_method: Optional[str] = None
    payment_notes: Optional[str] = None


@dataclass
class MaskedCard:
    brand: Optional[str]
    last_four: str


@dataclass
class CapturedSignature:
    """Validated, normalised signing capture"""

    signature_name: str
    signature_email: str
    consent: bool
    payment_method: Optional[str]
    payment_card_number: str
    payment_cvv: str
    card: MaskedCard
    payment_exp_month: int
    payment_exp_year: int
    payment_notes: Optional[str]
    billing: Address
    shipping: Address


@dataclass
class FileSource:
    """Uploaded contract document or a request for the standard placeholder"""

    file_data: Optional[str] = None
    file_name: Optional[str] = None
    file_type: Optional[str] = None
    use_placeholder: bool = False


@dataclass
class ContractDocument:
    file_name: str
    file_type: str
    file_size: Optional[int]
    file_data: Optional[str]
    uses_placeholder: bool


@dataclass
class ProfileValues:
    """Billing profile replacement values (masked card metadata only)"""

    payment_method: Optional[str] = None
    account_name: Optional[str] = None
    account_identifier: Optional[str] = None
    card_brand: Optional[str] = None
    card_last_four: Optional[str] = None
    card_expiry_month: Optional[int] = None
    card_expiry_year: Optional[int] = None
    billing_zip: Optional[str] = None
    autopay_enabled: bool = False
    notes: Optional[str] = None
