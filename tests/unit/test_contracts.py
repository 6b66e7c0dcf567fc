"""Unit tests for contract document intake and signature validation"""

import base64
import pytest
from datetime import date
from quote_engine.config import settings
from quote_engine.domain.contracts import ensure_voidable, resolve_document, validate_signature
from quote_engine.domain.exceptions import ValidationError, ValidationReason
from quote_engine.domain.models import Address, ContractStatus, FileSource, SignatureInput

TODAY = date(2025, 6, 1)
PDF_BYTES = b"%PDF-1.4 sample contract"


def _signature(**overrides) -> SignatureInput:
    fields = dict(
        signature_name="Dana Reyes",
        signature_email="Dana@Example.com",
        consent=True,
        payment_card_number="4111-1111-1111-1111",
        payment_cvv="123",
        payment_exp_month=12,
        payment_exp_year=2027,
        billing=Address(line1="100 Congress Ave", city="Austin", state="TX", postal_code="78701"),
        shipping=Address(),
        shipping_same_as_billing=True,
    )
    fields.update(overrides)
    return SignatureInput(**fields)


def _reason(status=ContractStatus.SENT, fallback_email=None, **overrides) -> ValidationReason:
    with pytest.raises(ValidationError) as exc:
        validate_signature(status, _signature(**overrides), fallback_email=fallback_email, today=TODAY)
    return exc.value.reason


def test_valid_signature_is_captured():
    capture = validate_signature(ContractStatus.SENT, _signature(), today=TODAY)

    assert capture.signature_name == "Dana Reyes"
    assert capture.signature_email == "dana@example.com"
    assert capture.payment_card_number == "4111111111111111"
    assert capture.card.last_four == "1111"
    assert capture.card.brand == "Visa"
    assert capture.shipping == capture.billing


def test_twelve_digit_card_is_rejected():
    assert _reason(payment_card_number="411111111111") == ValidationReason.INVALID_CARD_NUMBER


@pytest.mark.parametrize("status", [ContractStatus.DRAFT, ContractStatus.SIGNED, ContractStatus.VOID])
def test_only_sent_contracts_are_signable(status):
    assert _reason(status=status) == ValidationReason.CONTRACT_NOT_SIGNABLE


def test_consent_is_checked_before_payment():
    assert _reason(consent=False, payment_card_number="123") == ValidationReason.MISSING_CONSENT


def test_blank_signature_name():
    assert _reason(signature_name="   ") == ValidationReason.MISSING_SIGNATURE_NAME


def test_email_falls_back_to_lead_email():
    assert _reason(signature_email=None) == ValidationReason.MISSING_SIGNATURE_EMAIL

    capture = validate_signature(
        ContractStatus.SENT, _signature(signature_email=None), fallback_email="Lead@Example.com", today=TODAY
    )
    assert capture.signature_email == "lead@example.com"


@pytest.mark.parametrize("card", [None, "", "4111 1111 1111 111a", "4" * 20])
def test_invalid_card_numbers(card):
    assert _reason(payment_card_number=card) == ValidationReason.INVALID_CARD_NUMBER


@pytest.mark.parametrize("cvv", [None, "12", "12345", "1a3"])
def test_invalid_cvv(cvv):
    assert _reason(payment_cvv=cvv) == ValidationReason.INVALID_CVV


@pytest.mark.parametrize(
    "month,year",
    [(0, 2027), (13, 2027), (None, 2027), (12, 2024), (12, 2025 + settings.card_expiry_max_years_ahead + 1)],
)
def test_invalid_expiry(month, year):
    assert _reason(payment_exp_month=month, payment_exp_year=year) == ValidationReason.INVALID_EXPIRY


def test_incomplete_billing_address_names_the_field():
    with pytest.raises(ValidationError) as exc:
        validate_signature(
            ContractStatus.SENT,
            _signature(billing=Address(line1="100 Congress Ave", state="TX", postal_code="78701")),
            today=TODAY,
        )

    assert exc.value.reason == ValidationReason.INCOMPLETE_ADDRESS
    assert exc.value.field == "billingCity"


def test_shipping_address_required_unless_same_as_billing():
    with pytest.raises(ValidationError) as exc:
        validate_signature(ContractStatus.SENT, _signature(shipping_same_as_billing=False), today=TODAY)

    assert exc.value.reason == ValidationReason.INCOMPLETE_ADDRESS
    assert exc.value.field == "shippingAddressLine1"

    shipping = Address(line1="1 Main St", city="Dallas", state="TX", postal_code="75201")
    capture = validate_signature(
        ContractStatus.SENT, _signature(shipping_same_as_billing=False, shipping=shipping), today=TODAY
    )
    assert capture.shipping.city == "Dallas"
    assert capture.billing.city == "Austin"


def test_resolve_uploaded_pdf_from_data_url():
    encoded = base64.b64encode(PDF_BYTES).decode()
    document = resolve_document(
        FileSource(file_data=f"data:application/pdf;base64,{encoded}", file_name="signed.pdf"),
        default_name="lead-contract.pdf",
    )

    assert document.file_name == "signed.pdf"
    assert document.file_type == "application/pdf"
    assert document.file_size == len(PDF_BYTES)
    assert document.file_data == encoded
    assert document.uses_placeholder is False


def test_resolve_placeholder_document():
    document = resolve_document(FileSource(use_placeholder=True), default_name="lead-contract.pdf")

    assert document.uses_placeholder is True
    assert document.file_data is None
    assert document.file_name == settings.placeholder_contract_file_name


@pytest.mark.parametrize(
    "source,reason",
    [
        (FileSource(), ValidationReason.MISSING_DOCUMENT),
        (FileSource(file_data="not base64!!"), ValidationReason.INVALID_DOCUMENT),
        (
            FileSource(file_data=base64.b64encode(PDF_BYTES).decode(), file_type="image/png"),
            ValidationReason.INVALID_DOCUMENT,
        ),
    ],
)
def test_resolve_document_rejections(source, reason):
    with pytest.raises(ValidationError) as exc:
        resolve_document(source, default_name="lead-contract.pdf")

    assert exc.value.reason == reason


def test_resolve_document_size_limit(monkeypatch):
    monkeypatch.setattr(settings, "max_contract_file_bytes", 4)

    with pytest.raises(ValidationError) as exc:
        resolve_document(FileSource(file_data=base64.b64encode(PDF_BYTES).decode()), default_name="x.pdf")

    assert exc.value.reason == ValidationReason.INVALID_DOCUMENT


def test_signed_contracts_cannot_be_voided():
    ensure_voidable(ContractStatus.SENT)

    with pytest.raises(ValidationError) as exc:
        ensure_voidable(ContractStatus.SIGNED)

    assert exc.value.reason == ValidationReason.CONTRACT_NOT_VOIDABLE
