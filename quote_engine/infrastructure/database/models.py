"""SQLAlchemy ORM models for leads, quotes, contracts, policies and billing"""

import uuid
from sqlalchemy import (
    Column,
    String,
    BigInteger,
    Boolean,
    DateTime,
    Date,
    Integer,
    ForeignKey,
    Text,
    JSON,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base, relationship

from quote_engine.utils.date_utils import utc_now

Base = declarative_base()


class Lead(Base):
    """Prospective customer record prior to policy issuance"""

    __tablename__ = "lead"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    first_name = Column(Text, nullable=True)
    last_name = Column(Text, nullable=True)
    email = Column(Text, nullable=True, index=True)
    phone = Column(Text, nullable=True)
    zip = Column(String(16), nullable=True)
    state = Column(String(32), nullable=True)
    stage = Column(Text, nullable=False, default="new")
    source = Column(Text, nullable=True, default="web")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    vehicle = relationship("Vehicle", back_populates="lead", uselist=False, cascade="all, delete-orphan")
    quotes = relationship("Quote", back_populates="lead", cascade="all, delete-orphan", order_by="Quote.created_at")
    notes = relationship("LeadNote", back_populates="lead", cascade="all, delete-orphan", order_by="LeadNote.created_at")
    # Read-only: policies are only ever created through PolicyRepository.create_for_lead
    policy = relationship("Policy", uselist=False, viewonly=True)


class Vehicle(Base):
    __tablename__ = "vehicle"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    lead_id = Column(UUID(as_uuid=True), ForeignKey("lead.id", ondelete="CASCADE"), nullable=False, unique=True)
    year = Column(Integer, nullable=False)
    make = Column(Text, nullable=False)
    model = Column(Text, nullable=False)
    trim = Column(Text, nullable=True)
    vin = Column(String(32), nullable=True)
    odometer = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    lead = relationship("Lead", back_populates="vehicle")


class LeadNote(Base):
    __tablename__ = "lead_note"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    lead_id = Column(UUID(as_uuid=True), ForeignKey("lead.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    lead = relationship("Lead", back_populates="notes")


class Quote(Base):
    """Priced coverage offer; immutable once created"""

    __tablename__ = "quote"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    lead_id = Column(UUID(as_uuid=True), ForeignKey("lead.id", ondelete="CASCADE"), nullable=False, index=True)
    plan = Column(Text, nullable=False)
    deductible_cents = Column(BigInteger, nullable=False)
    term_months = Column(Integer, nullable=False)
    price_monthly_cents = Column(BigInteger, nullable=False)
    price_total_cents = Column(BigInteger, nullable=False)
    status = Column(Text, nullable=False, default="open")
    breakdown = Column(JSON, nullable=True)
    valid_until = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    lead = relationship("Lead", back_populates="quotes")
    contracts = relationship("Contract", back_populates="quote", order_by="Contract.created_at")


class Contract(Base):
    """Signable document instance tied to a quote"""

    __tablename__ = "contract"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    lead_id = Column(UUID(as_uuid=True), ForeignKey("lead.id", ondelete="CASCADE"), nullable=False, index=True)
    quote_id = Column(UUID(as_uuid=True), ForeignKey("quote.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(Text, nullable=False, default="draft")

    # Document
    file_name = Column(Text, nullable=False)
    file_type = Column(Text, nullable=True)
    file_size = Column(Integer, nullable=True)
    file_data = Column(Text, nullable=True)
    uses_placeholder = Column(Boolean, nullable=False, default=False)

    # Signature
    signature_name = Column(Text, nullable=True)
    signature_email = Column(Text, nullable=True)
    signature_ip = Column(String(64), nullable=True)
    signature_user_agent = Column(Text, nullable=True)
    signature_consent = Column(Boolean, nullable=False, default=False)
    signed_at = Column(DateTime(timezone=True), nullable=True)

    # Payment capture; card number and CVV are write-only
    payment_method = Column(Text, nullable=True)
    payment_card_number = Column(Text, nullable=True)
    payment_cvv = Column(String(4), nullable=True)
    payment_last_four = Column(String(4), nullable=True)
    payment_exp_month = Column(Integer, nullable=True)
    payment_exp_year = Column(Integer, nullable=True)
    payment_notes = Column(Text, nullable=True)

    billing_address_line1 = Column(Text, nullable=True)
    billing_address_line2 = Column(Text, nullable=True)
    billing_city = Column(Text, nullable=True)
    billing_state = Column(Text, nullable=True)
    billing_postal_code = Column(String(32), nullable=True)
    billing_country = Column(Text, nullable=True)
    shipping_address_line1 = Column(Text, nullable=True)
    shipping_address_line2 = Column(Text, nullable=True)
    shipping_city = Column(Text, nullable=True)
    shipping_state = Column(Text, nullable=True)
    shipping_postal_code = Column(String(32), nullable=True)
    shipping_country = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    quote = relationship("Quote", back_populates="contracts")
    lead = relationship("Lead")


class Policy(Base):
    """Issued coverage record, at most one per lead"""

    __tablename__ = "policy"
    __table_args__ = (UniqueConstraint("lead_id", name="policy_lead_id_key"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    lead_id = Column(UUID(as_uuid=True), ForeignKey("lead.id", ondelete="CASCADE"), nullable=False)
    package = Column(Text, nullable=True)
    policy_start_date = Column(Date, nullable=False)
    expiration_date = Column(Date, nullable=True)
    expiration_date_manually_set = Column(Boolean, nullable=False, default=False)
    expiration_miles = Column(Integer, nullable=True)
    deductible_cents = Column(BigInteger, nullable=True)
    total_premium_cents = Column(BigInteger, nullable=True)
    down_payment_cents = Column(BigInteger, nullable=True)
    monthly_payment_cents = Column(BigInteger, nullable=True)
    total_payments = Column(Integer, nullable=True)
    payment_option = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    payment_profile = relationship(
        "PaymentProfile", back_populates="policy", uselist=False, cascade="all, delete-orphan"
    )
    charges = relationship("PolicyCharge", back_populates="policy", cascade="all, delete-orphan")


class PaymentProfile(Base):
    """Masked payment method and autopay preference for a policy"""

    __tablename__ = "payment_profile"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    policy_id = Column(
        UUID(as_uuid=True), ForeignKey("policy.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    payment_method = Column(String(120), nullable=True)
    account_name = Column(String(120), nullable=True)
    account_identifier = Column(String(120), nullable=True)
    card_brand = Column(String(40), nullable=True)
    card_last_four = Column(String(4), nullable=True)
    card_expiry_month = Column(Integer, nullable=True)
    card_expiry_year = Column(Integer, nullable=True)
    billing_zip = Column(String(16), nullable=True)
    autopay_enabled = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    policy = relationship("Policy", back_populates="payment_profile")


class PolicyCharge(Base):
    """Billing attempt against a policy, as reported by the billing collaborator"""

    __tablename__ = "policy_charge"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    policy_id = Column(UUID(as_uuid=True), ForeignKey("policy.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(Text, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    status = Column(Text, nullable=False, default="pending")
    charged_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    reference = Column(String(120), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    policy = relationship("Policy", back_populates="charges")


class OutboundEvent(Base):
    """Event delivery record with retry tracking"""

    __tablename__ = "outbound_event"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    event_type = Column(Text, nullable=False)
    payload = Column(JSON, nullable=False)
    target_url = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default="pending")
    last_attempt_at = Column(DateTime(timezone=True), nullable=True)
    attempts = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
