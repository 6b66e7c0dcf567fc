"""Quote → contract → policy workflow orchestration over the repositories"""

import uuid
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from quote_engine.config import settings
from quote_engine.domain.billing import build_profile, validate_charge_amount
from quote_engine.domain.contracts import ensure_voidable, resolve_document, validate_signature
from quote_engine.domain.conversion import policy_form_from_quote, prepare_policy
from quote_engine.domain.exceptions import NotFoundError
from quote_engine.domain.leads import advance_stage
from quote_engine.domain.models import (
    ChargeStatus,
    ContractStatus,
    FileSource,
    LeadStage,
    PaymentOption,
    Plan,
    PolicyFormInput,
    ProfileValues,
    SignatureInput,
)
from quote_engine.domain.money import dollars_to_cents
from quote_engine.domain.pricing import quote_prices
from quote_engine.infrastructure.database.models import Contract, Lead, PaymentProfile, Policy, PolicyCharge, Quote
from quote_engine.infrastructure.database.repositories import (
    ChargeRepository,
    ContractRepository,
    LeadRepository,
    PaymentProfileRepository,
    PolicyRepository,
    QuoteRepository,
)
from quote_engine.utils.date_utils import utc_now


@dataclass
class ConversionResult:
    policy: Policy
    created: bool


@dataclass
class SignResult:
    contract: Contract
    policy: Policy
    policy_created: bool


def create_quote(
    db: Session,
    lead_id: uuid.UUID,
    plan: Plan,
    deductible_dollars: Any,
    term_months: int,
    price_monthly_dollars: Any,
    payment_option: Optional[PaymentOption] = None,
    expiration_miles: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Quote:
    """Price and persist a quote, then advance the lead to `quoted`"""
    lead = LeadRepository(db).require_lead(lead_id)

    prices = quote_prices(price_monthly_dollars, term_months)
    deductible_cents = dollars_to_cents(deductible_dollars, field="deductible")

    breakdown: Dict[str, Any] = {}
    if expiration_miles is not None:
        breakdown["expirationMiles"] = expiration_miles
    if payment_option is not None:
        breakdown["paymentOption"] = payment_option.value

    created_at = now or utc_now()
    quote = QuoteRepository(db).create_quote(
        lead_id=lead.id,
        plan=plan.value,
        deductible_cents=deductible_cents,
        term_months=term_months,
        prices=prices,
        breakdown=breakdown or None,
        valid_until=created_at + timedelta(days=settings.quote_valid_days),
    )

    LeadRepository(db).set_stage(lead, advance_stage(LeadStage(lead.stage), LeadStage.QUOTED))
    return quote


def _odometer(lead: Lead) -> Optional[int]:
    return lead.vehicle.odometer if lead.vehicle is not None else None


def convert_lead(db: Session, lead: Lead, form: PolicyFormInput, today: Optional[date] = None) -> ConversionResult:
    """
    The single path through which a lead acquires a policy.

    An already-converted lead returns its existing policy untouched, whatever
    the new input; validation only runs for a first conversion.
    """
    policy_repo = PolicyRepository(db)

    existing = policy_repo.get_by_lead(lead.id)
    if existing is not None:
        return ConversionResult(policy=existing, created=False)

    terms = prepare_policy(form, odometer=_odometer(lead), today=today)
    policy, created = policy_repo.create_for_lead(lead.id, terms)

    LeadRepository(db).set_stage(lead, LeadStage.FUNDED)
    return ConversionResult(policy=policy, created=created)


def create_contract(db: Session, lead_id: uuid.UUID, quote_id: uuid.UUID, source: FileSource) -> Contract:
    lead = LeadRepository(db).require_lead(lead_id)
    quote = QuoteRepository(db).get_quote(quote_id)
    if quote is None or quote.lead_id != lead.id:
        raise NotFoundError("Quote", quote_id)

    document = resolve_document(source, default_name=f"{lead.id}-contract.pdf")
    return ContractRepository(db).create_contract(lead.id, quote.id, document)


def sign_contract(
    db: Session,
    contract_id: uuid.UUID,
    signature: SignatureInput,
    signature_ip: Optional[str] = None,
    signature_user_agent: Optional[str] = None,
    now: Optional[datetime] = None,
) -> SignResult:
    """
    Commit a signature, then convert the lead from the signed quote.

    Validation happens before any write; the signed transition itself is a
    conditional update so a concurrent second signature is rejected.
    """
    contract_repo = ContractRepository(db)
    contract = contract_repo.require_contract(contract_id)
    lead = contract.lead
    signed_at = now or utc_now()

    capture = validate_signature(
        ContractStatus(contract.status),
        signature,
        fallback_email=lead.email,
        today=signed_at.date(),
    )
    contract_repo.mark_signed(contract, capture, signed_at, signature_ip, signature_user_agent)

    quote = contract.quote
    form = policy_form_from_quote(
        plan=quote.plan,
        deductible_cents=quote.deductible_cents,
        term_months=quote.term_months,
        price_monthly_cents=quote.price_monthly_cents,
        price_total_cents=quote.price_total_cents,
        breakdown=quote.breakdown,
        start_date=signed_at.date(),
    )
    conversion = convert_lead(db, lead, form, today=signed_at.date())

    profile_repo = PaymentProfileRepository(db)
    if profile_repo.get_for_policy(conversion.policy.id) is None:
        account_name = " ".join(part for part in (lead.first_name, lead.last_name) if part) or None
        profile_repo.replace(
            conversion.policy.id,
            ProfileValues(
                payment_method=capture.payment_method or "Credit card",
                account_name=account_name,
                card_brand=capture.card.brand,
                card_last_four=capture.card.last_four,
                card_expiry_month=capture.payment_exp_month,
                card_expiry_year=capture.payment_exp_year,
                billing_zip=capture.billing.postal_code,
            ),
        )

    return SignResult(contract=contract, policy=conversion.policy, policy_created=conversion.created)


def void_contract(db: Session, contract_id: uuid.UUID) -> Contract:
    contract_repo = ContractRepository(db)
    contract = contract_repo.require_contract(contract_id)
    ensure_voidable(ContractStatus(contract.status))
    return contract_repo.mark_void(contract)


def latest_contract_status(db: Session, quote_id: uuid.UUID) -> Optional[Contract]:
    """Operator-facing status comes from the most recently created contract"""
    if QuoteRepository(db).get_quote(quote_id) is None:
        raise NotFoundError("Quote", quote_id)
    return ContractRepository(db).latest_for_quote(quote_id)


def upsert_profile(db: Session, policy_id: uuid.UUID, fields: Dict[str, Any]) -> PaymentProfile:
    """Replace the billing profile wholesale; autopay is recorded, never scheduled here"""
    PolicyRepository(db).require_policy(policy_id)
    values = build_profile(**fields)
    return PaymentProfileRepository(db).replace(policy_id, values)


def get_profile(db: Session, policy_id: uuid.UUID) -> Optional[PaymentProfile]:
    PolicyRepository(db).require_policy(policy_id)
    return PaymentProfileRepository(db).get_for_policy(policy_id)


def record_charge(
    db: Session,
    policy_id: uuid.UUID,
    description: str,
    amount_cents: int,
    status: ChargeStatus = ChargeStatus.PENDING,
    charged_at: Optional[datetime] = None,
    reference: Optional[str] = None,
    notes: Optional[str] = None,
) -> PolicyCharge:
    PolicyRepository(db).require_policy(policy_id)
    validate_charge_amount(amount_cents)
    return ChargeRepository(db).record_charge(
        policy_id,
        description=description.strip(),
        amount_cents=amount_cents,
        status=status,
        charged_at=charged_at,
        reference=reference.strip() if reference and reference.strip() else None,
        notes=notes.strip() if notes and notes.strip() else None,
    )


def list_charges(db: Session, policy_id: uuid.UUID) -> List[PolicyCharge]:
    PolicyRepository(db).require_policy(policy_id)
    return ChargeRepository(db).list_for_policy(policy_id)
