"""Data access layer for leads, quotes, contracts, policies and billing"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from quote_engine.domain.exceptions import ConflictError, NotFoundError, ValidationError, ValidationReason
from quote_engine.domain.models import (
    CapturedSignature,
    ChargeStatus,
    ContractDocument,
    ContractStatus,
    LeadStage,
    PolicyTerms,
    ProfileValues,
    QuotePrices,
    QuoteStatus,
)
from quote_engine.infrastructure.database.models import (
    Contract,
    Lead,
    LeadNote,
    OutboundEvent,
    PaymentProfile,
    Policy,
    PolicyCharge,
    Quote,
    Vehicle,
)
from quote_engine.utils.date_utils import utc_now


class LeadRepository:
    """Repository for leads and their vehicle/notes"""

    def __init__(self, db: Session):
        self.db = db

    def create_lead(self, vehicle: Optional[Dict[str, Any]] = None, **fields: Any) -> Lead:
        db_lead = Lead(stage=LeadStage.NEW.value, **fields)
        if vehicle:
            db_lead.vehicle = Vehicle(**vehicle)
        self.db.add(db_lead)
        self.db.flush()
        return db_lead

    def get_lead(self, lead_id: uuid.UUID) -> Optional[Lead]:
        return self.db.query(Lead).filter(Lead.id == lead_id).first()

    def require_lead(self, lead_id: uuid.UUID) -> Lead:
        lead = self.get_lead(lead_id)
        if lead is None:
            raise NotFoundError("Lead", lead_id)
        return lead

    def set_stage(self, lead: Lead, stage: LeadStage) -> Lead:
        lead.stage = stage.value
        self.db.flush()
        return lead

    def add_note(self, lead: Lead, content: str) -> LeadNote:
        note = LeadNote(lead_id=lead.id, content=content)
        self.db.add(note)
        self.db.flush()
        return note


class QuoteRepository:
    """Repository for quotes"""

    def __init__(self, db: Session):
        self.db = db

    def create_quote(
        self,
        lead_id: uuid.UUID,
        plan: str,
        deductible_cents: int,
        term_months: int,
        prices: QuotePrices,
        breakdown: Optional[Dict[str, Any]],
        valid_until: Optional[datetime],
    ) -> Quote:
        db_quote = Quote(
            lead_id=lead_id,
            plan=plan,
            deductible_cents=deductible_cents,
            term_months=term_months,
            price_monthly_cents=prices.price_monthly_cents,
            price_total_cents=prices.price_total_cents,
            status=QuoteStatus.OPEN.value,
            breakdown=breakdown,
            valid_until=valid_until,
        )
        self.db.add(db_quote)
        self.db.flush()
        return db_quote

    def get_quote(self, quote_id: uuid.UUID) -> Optional[Quote]:
        return self.db.query(Quote).filter(Quote.id == quote_id).first()

    def list_for_lead(self, lead_id: uuid.UUID) -> List[Quote]:
        return (
            self.db.query(Quote)
            .filter(Quote.lead_id == lead_id)
            .order_by(Quote.created_at.desc())
            .all()
        )


class PolicyRepository:
    """Repository for policies; the only writer of policy rows"""

    def __init__(self, db: Session):
        self.db = db

    def get_policy(self, policy_id: uuid.UUID) -> Optional[Policy]:
        return self.db.query(Policy).filter(Policy.id == policy_id).first()

    def require_policy(self, policy_id: uuid.UUID) -> Policy:
        policy = self.get_policy(policy_id)
        if policy is None:
            raise NotFoundError("Policy", policy_id)
        return policy

    def get_by_lead(self, lead_id: uuid.UUID) -> Optional[Policy]:
        return self.db.query(Policy).filter(Policy.lead_id == lead_id).first()

    def _insert(self, lead_id: uuid.UUID, terms: PolicyTerms) -> Policy:
        db_policy = Policy(
            lead_id=lead_id,
            package=terms.package,
            policy_start_date=terms.policy_start_date,
            expiration_date=terms.expiration_date,
            expiration_date_manually_set=terms.expiration_date_manually_set,
            expiration_miles=terms.expiration_miles,
            deductible_cents=terms.deductible_cents,
            total_premium_cents=terms.total_premium_cents,
            down_payment_cents=terms.down_payment_cents,
            monthly_payment_cents=terms.monthly_payment_cents,
            total_payments=terms.total_payments,
            payment_option=terms.payment_option.value,
        )
        try:
            # SAVEPOINT so a losing concurrent insert does not poison the outer transaction
            with self.db.begin_nested():
                self.db.add(db_policy)
                self.db.flush()
        except IntegrityError as e:
            raise ConflictError("Lead has already been converted", existing=self.get_by_lead(lead_id)) from e
        return db_policy

    def create_for_lead(self, lead_id: uuid.UUID, terms: PolicyTerms) -> Tuple[Policy, bool]:
        """
        Insert the lead's policy exactly once.

        Returns:
            (policy, created) - created is False when a policy already existed,
            including when a concurrent request inserted it first
        """
        existing = self.get_by_lead(lead_id)
        if existing is not None:
            return existing, False

        try:
            return self._insert(lead_id, terms), True
        except ConflictError as e:
            if e.existing is None:
                raise
            return e.existing, False


class ContractRepository:
    """Repository for contracts and their state transitions"""

    def __init__(self, db: Session):
        self.db = db

    def create_contract(self, lead_id: uuid.UUID, quote_id: uuid.UUID, document: ContractDocument) -> Contract:
        """Create a contract in `sent`, voiding unsigned contracts it supersedes"""
        superseded = (
            self.db.query(Contract)
            .filter(
                Contract.quote_id == quote_id,
                Contract.status.in_([ContractStatus.DRAFT.value, ContractStatus.SENT.value]),
            )
            .all()
        )
        for old in superseded:
            old.status = ContractStatus.VOID.value

        db_contract = Contract(
            lead_id=lead_id,
            quote_id=quote_id,
            status=ContractStatus.SENT.value,
            file_name=document.file_name,
            file_type=document.file_type,
            file_size=document.file_size,
            file_data=document.file_data,
            uses_placeholder=document.uses_placeholder,
        )
        self.db.add(db_contract)
        self.db.flush()
        return db_contract

    def get_contract(self, contract_id: uuid.UUID) -> Optional[Contract]:
        return self.db.query(Contract).filter(Contract.id == contract_id).first()

    def require_contract(self, contract_id: uuid.UUID) -> Contract:
        contract = self.get_contract(contract_id)
        if contract is None:
            raise NotFoundError("Contract", contract_id)
        return contract

    def latest_for_quote(self, quote_id: uuid.UUID) -> Optional[Contract]:
        return (
            self.db.query(Contract)
            .filter(Contract.quote_id == quote_id)
            .order_by(Contract.created_at.desc())
            .first()
        )

    def _transition(self, contract: Contract, from_statuses: List[ContractStatus], values: Dict[str, Any]) -> int:
        # Conditional UPDATE: only one request can move the contract out of from_statuses
        updated = (
            self.db.query(Contract)
            .filter(
                Contract.id == contract.id,
                Contract.status.in_([s.value for s in from_statuses]),
            )
            .update(values, synchronize_session=False)
        )
        self.db.refresh(contract)
        return updated

    def mark_signed(
        self,
        contract: Contract,
        capture: CapturedSignature,
        signed_at: datetime,
        signature_ip: Optional[str] = None,
        signature_user_agent: Optional[str] = None,
    ) -> Contract:
        values = {
            Contract.status: ContractStatus.SIGNED.value,
            Contract.signed_at: signed_at,
            Contract.signature_name: capture.signature_name,
            Contract.signature_email: capture.signature_email,
            Contract.signature_consent: capture.consent,
            Contract.signature_ip: signature_ip[:64] if signature_ip else None,
            Contract.signature_user_agent: signature_user_agent,
            Contract.payment_method: capture.payment_method,
            Contract.payment_card_number: capture.payment_card_number,
            Contract.payment_cvv: capture.payment_cvv,
            Contract.payment_last_four: capture.card.last_four,
            Contract.payment_exp_month: capture.payment_exp_month,
            Contract.payment_exp_year: capture.payment_exp_year,
            Contract.payment_notes: capture.payment_notes,
            Contract.billing_address_line1: capture.billing.line1,
            Contract.billing_address_line2: capture.billing.line2,
            Contract.billing_city: capture.billing.city,
            Contract.billing_state: capture.billing.state,
            Contract.billing_postal_code: capture.billing.postal_code,
            Contract.billing_country: capture.billing.country,
            Contract.shipping_address_line1: capture.shipping.line1,
            Contract.shipping_address_line2: capture.shipping.line2,
            Contract.shipping_city: capture.shipping.city,
            Contract.shipping_state: capture.shipping.state,
            Contract.shipping_postal_code: capture.shipping.postal_code,
            Contract.shipping_country: capture.shipping.country,
            Contract.updated_at: signed_at,
        }
        if self._transition(contract, [ContractStatus.SENT], values) == 0:
            raise ValidationError(
                ValidationReason.CONTRACT_NOT_SIGNABLE,
                "This contract has already been signed or is no longer available",
                field="status",
            )
        return contract

    def mark_void(self, contract: Contract) -> Contract:
        values = {Contract.status: ContractStatus.VOID.value, Contract.updated_at: utc_now()}
        if self._transition(contract, [ContractStatus.DRAFT, ContractStatus.SENT], values) == 0:
            raise ValidationError(
                ValidationReason.CONTRACT_NOT_VOIDABLE,
                "Only unsigned contracts can be voided",
                field="status",
            )
        return contract


class PaymentProfileRepository:
    """Repository for per-policy billing profiles"""

    def __init__(self, db: Session):
        self.db = db

    def get_for_policy(self, policy_id: uuid.UUID) -> Optional[PaymentProfile]:
        return self.db.query(PaymentProfile).filter(PaymentProfile.policy_id == policy_id).first()

    def replace(self, policy_id: uuid.UUID, values: ProfileValues) -> PaymentProfile:
        """Replace the profile wholesale; fields absent from values are cleared"""
        profile = self.get_for_policy(policy_id)
        if profile is None:
            profile = PaymentProfile(policy_id=policy_id)
            self.db.add(profile)

        profile.payment_method = values.payment_method
        profile.account_name = values.account_name
        profile.account_identifier = values.account_identifier
        profile.card_brand = values.card_brand
        profile.card_last_four = values.card_last_four
        profile.card_expiry_month = values.card_expiry_month
        profile.card_expiry_year = values.card_expiry_year
        profile.billing_zip = values.billing_zip
        profile.autopay_enabled = values.autopay_enabled
        profile.notes = values.notes

        self.db.flush()
        return profile


class ChargeRepository:
    """Append-only policy charge ledger"""

    def __init__(self, db: Session):
        self.db = db

    def record_charge(
        self,
        policy_id: uuid.UUID,
        description: str,
        amount_cents: int,
        status: ChargeStatus = ChargeStatus.PENDING,
        charged_at: Optional[datetime] = None,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> PolicyCharge:
        db_charge = PolicyCharge(
            policy_id=policy_id,
            description=description,
            amount_cents=amount_cents,
            status=status.value,
            charged_at=charged_at or utc_now(),
            reference=reference,
            notes=notes,
        )
        self.db.add(db_charge)
        self.db.flush()
        return db_charge

    def get_charge(self, charge_id: uuid.UUID) -> Optional[PolicyCharge]:
        return self.db.query(PolicyCharge).filter(PolicyCharge.id == charge_id).first()

    def require_charge(self, charge_id: uuid.UUID) -> PolicyCharge:
        charge = self.get_charge(charge_id)
        if charge is None:
            raise NotFoundError("Charge", charge_id)
        return charge

    def update_status(self, charge: PolicyCharge, status: ChargeStatus) -> PolicyCharge:
        """Store the status reported by the billing collaborator verbatim"""
        charge.status = status.value
        self.db.flush()
        return charge

    def list_for_policy(self, policy_id: uuid.UUID) -> List[PolicyCharge]:
        """Charges most recent first"""
        return (
            self.db.query(PolicyCharge)
            .filter(PolicyCharge.policy_id == policy_id)
            .order_by(PolicyCharge.charged_at.desc(), PolicyCharge.created_at.desc())
            .all()
        )


class OutboundEventRepository:
    """Delivery records for published domain events"""

    def __init__(self, db: Session):
        self.db = db

    def create_event(self, event_type: str, payload: Dict[str, Any], target_url: Optional[str]) -> OutboundEvent:
        event = OutboundEvent(event_type=event_type, payload=payload, target_url=target_url)
        self.db.add(event)
        self.db.flush()
        return event

    def record_attempt(self, event_id: uuid.UUID, attempts: int, delivered: bool) -> None:
        event = self.db.query(OutboundEvent).filter(OutboundEvent.id == event_id).first()
        if event is None:
            return
        event.attempts = attempts
        event.last_attempt_at = utc_now()
        event.status = "delivered" if delivered else "failed"
        self.db.flush()
