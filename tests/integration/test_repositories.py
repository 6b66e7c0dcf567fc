"""Persistence guards: one policy per lead, conditional contract transitions"""

import pytest
from datetime import date
from sqlalchemy.orm import Session
from quote_engine.domain.exceptions import ConflictError, ValidationError, ValidationReason
from quote_engine.domain.models import (
    Address,
    CapturedSignature,
    ContractDocument,
    MaskedCard,
    PaymentOption,
    PolicyTerms,
    QuotePrices,
)
from quote_engine.infrastructure.database.models import Contract, Policy
from quote_engine.infrastructure.database.repositories import (
    ContractRepository,
    LeadRepository,
    PolicyRepository,
    QuoteRepository,
)
from quote_engine.utils.date_utils import utc_now


def _terms() -> PolicyTerms:
    return PolicyTerms(
        package="gold",
        policy_start_date=date(2024, 3, 15),
        expiration_date=date(2029, 3, 15),
        expiration_date_manually_set=False,
        expiration_miles=142000,
        deductible_cents=10000,
        total_premium_cents=299916,
        down_payment_cents=8331,
        monthly_payment_cents=8331,
        total_payments=36,
        payment_option=PaymentOption.MONTHLY,
    )


def _capture() -> CapturedSignature:
    billing = Address(line1="100 Congress Ave", city="Austin", state="TX", postal_code="78701")
    return CapturedSignature(
        signature_name="Dana Reyes",
        signature_email="dana@example.com",
        consent=True,
        payment_method=None,
        payment_card_number="4111111111111111",
        payment_cvv="123",
        card=MaskedCard(brand="Visa", last_four="1111"),
        payment_exp_month=12,
        payment_exp_year=2030,
        payment_notes=None,
        billing=billing,
        shipping=billing,
    )


def test_create_for_lead_is_idempotent(db: Session):
    lead = LeadRepository(db).create_lead(first_name="Dana")
    repo = PolicyRepository(db)

    first, created = repo.create_for_lead(lead.id, _terms())
    second, created_again = repo.create_for_lead(lead.id, _terms())

    assert created is True
    assert created_again is False
    assert second.id == first.id
    assert db.query(Policy).count() == 1


def test_losing_concurrent_insert_returns_existing_policy(db: Session):
    """A racer that missed the existing row is stopped by the unique constraint"""
    lead = LeadRepository(db).create_lead(first_name="Dana")
    repo = PolicyRepository(db)
    first, _ = repo.create_for_lead(lead.id, _terms())

    with pytest.raises(ConflictError) as exc:
        repo._insert(lead.id, _terms())
    assert exc.value.existing.id == first.id

    real_lookup = repo.get_by_lead
    calls = []

    def stale_lookup(lead_id):
        calls.append(lead_id)
        return None if len(calls) == 1 else real_lookup(lead_id)

    repo.get_by_lead = stale_lookup
    policy, created = repo.create_for_lead(lead.id, _terms())

    assert created is False
    assert policy.id == first.id
    assert db.query(Policy).count() == 1


def test_mark_signed_only_succeeds_once(db: Session):
    lead = LeadRepository(db).create_lead(first_name="Dana")
    quote = QuoteRepository(db).create_quote(
        lead.id, "gold", 0, 36, QuotePrices(8331, 299916), breakdown=None, valid_until=None
    )
    document = ContractDocument("c.pdf", "application/pdf", None, None, uses_placeholder=True)
    contracts = ContractRepository(db)
    contract = contracts.create_contract(lead.id, quote.id, document)

    contracts.mark_signed(contract, _capture(), utc_now())
    signed_at = contract.signed_at

    with pytest.raises(ValidationError) as exc:
        contracts.mark_signed(contract, _capture(), utc_now())

    assert exc.value.reason == ValidationReason.CONTRACT_NOT_SIGNABLE
    assert contract.status == "signed"
    assert contract.signed_at == signed_at


def test_new_contract_voids_superseded_unsigned_contract(db: Session):
    lead = LeadRepository(db).create_lead(first_name="Dana")
    quote = QuoteRepository(db).create_quote(
        lead.id, "gold", 0, 36, QuotePrices(8331, 299916), breakdown=None, valid_until=None
    )
    document = ContractDocument("c.pdf", "application/pdf", None, None, uses_placeholder=True)
    contracts = ContractRepository(db)

    old = contracts.create_contract(lead.id, quote.id, document)
    new = contracts.create_contract(lead.id, quote.id, document)

    assert old.status == "void"
    assert new.status == "sent"
    assert db.query(Contract).filter(Contract.status == "sent").count() == 1
