"""Billing profile and charge ledger rules"""

import re
from datetime import date
from typing import Optional

from quote_engine.config import settings
from quote_engine.domain.exceptions import ValidationError, ValidationReason
from quote_engine.domain.models import MaskedCard, ProfileValues

_LAST_FOUR = re.compile(r"^\d{2,4}$")


def detect_card_brand(card_number: str) -> Optional[str]:
    """Best-effort brand from the issuer identification prefix"""
    if card_number.startswith("4"):
        return "Visa"
    if card_number[:2] in ("34", "37"):
        return "American Express"
    prefix2 = int(card_number[:2]) if len(card_number) >= 2 else 0
    prefix4 = int(card_number[:4]) if len(card_number) >= 4 else 0
    if 51 <= prefix2 <= 55 or 2221 <= prefix4 <= 2720:
        return "Mastercard"
    if card_number.startswith("6011") or card_number.startswith("65"):
        return "Discover"
    return None


def mask_card(card_number: str) -> MaskedCard:
    """Reduce a full card number to brand and last four; the number itself is dropped"""
    return MaskedCard(brand=detect_card_brand(card_number), last_four=card_number[-4:])


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def build_profile(
    payment_method: Optional[str] = None,
    account_name: Optional[str] = None,
    account_identifier: Optional[str] = None,
    card_brand: Optional[str] = None,
    card_last_four: Optional[str] = None,
    card_expiry_month: Optional[int] = None,
    card_expiry_year: Optional[int] = None,
    billing_zip: Optional[str] = None,
    autopay_enabled: Optional[bool] = None,
    notes: Optional[str] = None,
    today: Optional[date] = None,
) -> ProfileValues:
    """
    Validate and normalise a wholesale billing profile replacement.

    Fields the caller leaves out are cleared, not merged.
    """
    last_four = _clean(card_last_four)
    if last_four is not None and not _LAST_FOUR.match(last_four):
        raise ValidationError(
            ValidationReason.INVALID_CARD_NUMBER,
            "Enter the last 2-4 digits on the card",
            field="cardLastFour",
        )

    if card_expiry_month is not None and not 1 <= card_expiry_month <= 12:
        raise ValidationError(ValidationReason.INVALID_EXPIRY, "Expiry month must be 1-12", field="cardExpiryMonth")

    if card_expiry_year is not None:
        current_year = (today or date.today()).year
        if not current_year <= card_expiry_year <= current_year + settings.card_expiry_max_years_ahead:
            raise ValidationError(ValidationReason.INVALID_EXPIRY, "Expiry year is out of range", field="cardExpiryYear")

    zip_code = _clean(billing_zip)
    if zip_code is not None and not 3 <= len(zip_code) <= 16:
        raise ValidationError(ValidationReason.INCOMPLETE_ADDRESS, "Enter a valid billing ZIP", field="billingZip")

    return ProfileValues(
        payment_method=_clean(payment_method),
        account_name=_clean(account_name),
        account_identifier=_clean(account_identifier),
        card_brand=_clean(card_brand),
        card_last_four=last_four,
        card_expiry_month=card_expiry_month,
        card_expiry_year=card_expiry_year,
        billing_zip=zip_code,
        autopay_enabled=bool(autopay_enabled),
        notes=_clean(notes),
    )


def validate_charge_amount(amount_cents: int) -> None:
    if amount_cents < 1:
        raise ValidationError(ValidationReason.INVALID_AMOUNT, "Amount must be at least $0.01", field="amountCents")

