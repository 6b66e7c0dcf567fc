"""Quote price reconciliation - keeps total, monthly and term consistent"""

import re
from dataclasses import replace
from decimal import Decimal
from typing import Iterable, Union

from quote_engine.domain.exceptions import ValidationError, ValidationReason
from quote_engine.domain.models import EditField, PriceEdit, PriceField, QuoteDraft, QuotePrices
from quote_engine.domain.money import divide_cents, dollars_to_cents, parse_decimal_to_cents

_INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")


def _parse_money(value: Union[str, int], field: str) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return parse_decimal_to_cents(value, field=field)


def _parse_count(value: Union[str, int], field: str, reason: ValidationReason) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        cleaned = value.strip().replace(",", "")
        if _INTEGER_PATTERN.match(cleaned):
            return int(cleaned)
    raise ValidationError(reason, f"Enter a whole number for {field}", field=field)


def _derive(draft: QuoteDraft) -> QuoteDraft:
    """Recompute the non-ground-truth price field from the last edited one"""
    term = draft.term_months

    if draft.last_edited_price_field == PriceField.MONTHLY:
        if term <= 0 or draft.price_monthly_cents is None:
            return replace(draft, price_total_cents=None)
        return replace(draft, price_total_cents=draft.price_monthly_cents * term)

    if term <= 0 or draft.price_total_cents is None:
        return replace(draft, price_monthly_cents=None)
    return replace(draft, price_monthly_cents=divide_cents(draft.price_total_cents, term))


def apply_edit(draft: QuoteDraft, edit: PriceEdit) -> QuoteDraft:
    """
    Apply a single-field edit and return the reconciled draft.

    The field the user touched most recently is ground truth; the other price
    field is always derived from it. Editing total, then monthly, then term
    therefore never oscillates.

    Raises:
        ValidationError: non-numeric input or a negative term. The input
            draft is never mutated, so the caller keeps its prior state.
    """
    field = edit.field

    if field == EditField.TOTAL:
        total = _parse_money(edit.value, field.value)
        return _derive(replace(draft, price_total_cents=total, last_edited_price_field=PriceField.TOTAL))

    if field == EditField.MONTHLY:
        monthly = _parse_money(edit.value, field.value)
        return _derive(replace(draft, price_monthly_cents=monthly, last_edited_price_field=PriceField.MONTHLY))

    if field == EditField.TERM:
        term = _parse_count(edit.value, field.value, ValidationReason.INVALID_TERM)
        if term < 0:
            raise ValidationError(ValidationReason.INVALID_TERM, "Term cannot be negative", field=field.value)
        return _derive(replace(draft, term_months=term))

    if field == EditField.DEDUCTIBLE:
        deductible = _parse_money(edit.value, field.value)
        return replace(draft, deductible_cents=max(deductible, 0))

    if field == EditField.EXPIRATION_MILES:
        miles = _parse_count(edit.value, field.value, ValidationReason.INVALID_AMOUNT)
        return replace(draft, expiration_miles=max(miles, 0))

    raise ValueError(f"Unsupported edit field: {field}")


def apply_edits(draft: QuoteDraft, edits: Iterable[PriceEdit]) -> QuoteDraft:
    for edit in edits:
        draft = apply_edit(draft, edit)
    return draft


def is_consistent(draft: QuoteDraft, tolerance_cents: int = 1) -> bool:
    """Check the total/monthly/term invariant for a reconciled draft"""
    total = draft.price_total_cents
    monthly = draft.price_monthly_cents
    term = draft.term_months

    if term <= 0 or total is None or monthly is None:
        return True

    if draft.last_edited_price_field == PriceField.MONTHLY:
        return abs(total - monthly * term) <= tolerance_cents
    return abs(monthly - divide_cents(total, term)) <= tolerance_cents


def quote_prices(price_monthly_dollars: Union[str, int, float, Decimal], term_months: int) -> QuotePrices:
    """
    Price a submitted quote from its monthly dollar amount.

    Example:
        $83.31 × 36 months → monthly 8331, total 299916
    """
    if term_months <= 0:
        raise ValidationError(ValidationReason.INVALID_TERM, "Term must be at least one month", field="termMonths")

    monthly_cents = dollars_to_cents(price_monthly_dollars, field="priceMonthly")
    if monthly_cents < 1:
        raise ValidationError(
            ValidationReason.INVALID_AMOUNT,
            "Monthly price must be at least $0.01",
            field="priceMonthly",
        )
    return QuotePrices(price_monthly_cents=monthly_cents, price_total_cents=monthly_cents * term_months)
