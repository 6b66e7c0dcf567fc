"""Contract lifecycle rules: document intake, signing capture validation, voiding"""

import base64
import binascii
import re
from dataclasses import replace
from datetime import date
from typing import Optional

from quote_engine.config import settings
from quote_engine.domain.billing import mask_card
from quote_engine.domain.exceptions import ValidationError, ValidationReason
from quote_engine.domain.models import (
    Address,
    CapturedSignature,
    ContractDocument,
    ContractStatus,
    FileSource,
    SignatureInput,
)

_CARD_SEPARATORS = re.compile(r"[\s-]")
_DIGITS = re.compile(r"^\d+$")

# Address parts that must be present, in the order they are reported
_REQUIRED_ADDRESS_PARTS = (
    ("line1", "AddressLine1", "address"),
    ("city", "City", "city"),
    ("state", "State", "state"),
    ("postal_code", "PostalCode", "postal code"),
)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _clean_address(address: Address) -> Address:
    return Address(
        line1=_clean(address.line1),
        line2=_clean(address.line2),
        city=_clean(address.city),
        state=_clean(address.state),
        postal_code=_clean(address.postal_code),
        country=_clean(address.country),
    )


def _require_address(address: Address, prefix: str) -> None:
    for attr, suffix, label in _REQUIRED_ADDRESS_PARTS:
        if not getattr(address, attr):
            raise ValidationError(
                ValidationReason.INCOMPLETE_ADDRESS,
                f"{prefix.capitalize()} {label} is required",
                field=f"{prefix}{suffix}",
            )


def _card_digits(raw: Optional[str]) -> Optional[str]:
    if raw is None:
        return None
    digits = _CARD_SEPARATORS.sub("", raw)
    return digits if _DIGITS.match(digits) else None


def validate_signature(
    status: ContractStatus,
    signature: SignatureInput,
    fallback_email: Optional[str] = None,
    today: Optional[date] = None,
) -> CapturedSignature:
    """
    Validate a signing submission against the contract state.

    Every failure carries a specific reason; nothing is committed here.

    Raises:
        ValidationError: first failing precondition, checked in order:
            state, consent, name, email, card number, CVV, expiry, addresses
    """
    if status != ContractStatus.SENT:
        raise ValidationError(
            ValidationReason.CONTRACT_NOT_SIGNABLE,
            f"This contract cannot be signed (status: {status.value})",
            field="status",
        )

    if signature.consent is not True:
        raise ValidationError(
            ValidationReason.MISSING_CONSENT,
            "You must agree to the contract terms before signing",
            field="consent",
        )

    name = _clean(signature.signature_name)
    if not name:
        raise ValidationError(ValidationReason.MISSING_SIGNATURE_NAME, "Signature is required", field="signatureName")

    email = _clean(signature.signature_email) or _clean(fallback_email)
    if not email:
        raise ValidationError(
            ValidationReason.MISSING_SIGNATURE_EMAIL,
            "A contact email is required to sign this contract",
            field="signatureEmail",
        )

    card_number = _card_digits(signature.payment_card_number)
    if card_number is None or not 13 <= len(card_number) <= 19:
        raise ValidationError(
            ValidationReason.INVALID_CARD_NUMBER,
            "Card number must be 13-19 digits",
            field="paymentCardNumber",
        )

    cvv = _clean(signature.payment_cvv)
    if cvv is None or not _DIGITS.match(cvv) or not 3 <= len(cvv) <= 4:
        raise ValidationError(ValidationReason.INVALID_CVV, "CVV must be 3 or 4 digits", field="paymentCvv")

    month = signature.payment_exp_month
    if month is None or not 1 <= month <= 12:
        raise ValidationError(ValidationReason.INVALID_EXPIRY, "Expiry month must be 1-12", field="paymentExpMonth")

    current_year = (today or date.today()).year
    year = signature.payment_exp_year
    if year is None or not current_year <= year <= current_year + settings.card_expiry_max_years_ahead:
        raise ValidationError(ValidationReason.INVALID_EXPIRY, "Expiry year is out of range", field="paymentExpYear")

    billing = _clean_address(signature.billing)
    _require_address(billing, "billing")

    if signature.shipping_same_as_billing:
        shipping = replace(billing)
    else:
        shipping = _clean_address(signature.shipping)
        _require_address(shipping, "shipping")

    return CapturedSignature(
        signature_name=name,
        signature_email=email.lower(),
        consent=True,
        payment_method=_clean(signature.payment_method),
        payment_card_number=card_number,
        payment_cvv=cvv,
        card=mask_card(card_number),
        payment_exp_month=month,
        payment_exp_year=year,
        payment_notes=_clean(signature.payment_notes),
        billing=billing,
        shipping=shipping,
    )


def _strip_data_url(data: str) -> str:
    # "data:application/pdf;base64,JVBERi0..." → "JVBERi0..."
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    return re.sub(r"\s+", "", data)


def resolve_document(source: FileSource, default_name: str) -> ContractDocument:
    """
    Turn an upload or a placeholder request into the stored contract document.

    Raises:
        ValidationError: MissingDocument when neither is given,
            InvalidDocument for unreadable, empty, oversized or non-PDF uploads
    """
    raw = (source.file_data or "").strip()

    if raw:
        payload = _strip_data_url(raw)
        try:
            content = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValidationError(
                ValidationReason.INVALID_DOCUMENT,
                "We could not read that file. Please upload a valid PDF.",
                field="fileData",
            ) from e

        if not content:
            raise ValidationError(ValidationReason.INVALID_DOCUMENT, "The uploaded file is empty.", field="fileData")
        if len(content) > settings.max_contract_file_bytes:
            raise ValidationError(
                ValidationReason.INVALID_DOCUMENT,
                "Contract files must be 5MB or smaller.",
                field="fileData",
            )

        file_type = (_clean(source.file_type) or "application/pdf").lower()
        if "pdf" not in file_type:
            raise ValidationError(
                ValidationReason.INVALID_DOCUMENT,
                "Contracts must be uploaded as PDF files.",
                field="fileType",
            )

        return ContractDocument(
            file_name=_clean(source.file_name) or default_name,
            file_type=file_type,
            file_size=len(content),
            file_data=payload,
            uses_placeholder=False,
        )

    if source.use_placeholder:
        return ContractDocument(
            file_name=_clean(source.file_name) or settings.placeholder_contract_file_name,
            file_type="application/pdf",
            file_size=None,
            file_data=None,
            uses_placeholder=True,
        )

    raise ValidationError(
        ValidationReason.MISSING_DOCUMENT,
        "Please upload a PDF of the contract or use the standard contract.",
        field="fileData",
    )


def ensure_voidable(status: ContractStatus) -> None:
    if status not in (ContractStatus.DRAFT, ContractStatus.SENT):
        raise ValidationError(
            ValidationReason.CONTRACT_NOT_VOIDABLE,
            f"Only unsigned contracts can be voided (status: {status.value})",
            field="status",
        )
