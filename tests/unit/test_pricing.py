"""Unit tests for quote price reconciliation"""

import pytest
from itertools import permutations
from quote_engine.domain.exceptions import ValidationError, ValidationReason
from quote_engine.domain.models import EditField, PriceEdit, PriceField, QuoteDraft
from quote_engine.domain.pricing import apply_edit, apply_edits, is_consistent, quote_prices


def test_term_change_rederives_monthly_from_total():
    """Total is ground truth: 299900 over 24 months → 12496/month"""
    draft = QuoteDraft(price_total_cents=299900, term_months=36, last_edited_price_field=PriceField.TOTAL)

    updated = apply_edit(draft, PriceEdit(EditField.TERM, "24"))

    assert updated.term_months == 24
    assert updated.price_total_cents == 299900
    assert updated.price_monthly_cents == 12496


def test_monthly_edit_then_term_change_keeps_monthly_as_truth():
    draft = QuoteDraft(term_months=36)

    after_monthly = apply_edit(draft, PriceEdit(EditField.MONTHLY, 8331))
    assert after_monthly.price_total_cents == 299916
    assert after_monthly.last_edited_price_field == PriceField.MONTHLY

    after_term = apply_edit(after_monthly, PriceEdit(EditField.TERM, 48))
    assert after_term.price_monthly_cents == 8331
    assert after_term.price_total_cents == 399888


def test_total_edit_accepts_formatted_dollars():
    draft = QuoteDraft(term_months=36, last_edited_price_field=PriceField.MONTHLY)

    updated = apply_edit(draft, PriceEdit(EditField.TOTAL, "$2,999.00"))

    assert updated.price_total_cents == 299900
    assert updated.price_monthly_cents == 8331
    assert updated.last_edited_price_field == PriceField.TOTAL


def test_every_edit_order_stays_consistent():
    """No ordering of total/monthly/term edits leaves the prices out of step"""
    edits = [
        PriceEdit(EditField.TOTAL, "2999"),
        PriceEdit(EditField.MONTHLY, "83.31"),
        PriceEdit(EditField.TERM, "48"),
        PriceEdit(EditField.TERM, "7"),
        PriceEdit(EditField.DEDUCTIBLE, "100"),
    ]

    for order in permutations(edits):
        draft = QuoteDraft()
        for edit in order:
            draft = apply_edit(draft, edit)
            assert is_consistent(draft)


def test_last_edited_field_decides_derivation():
    draft = apply_edits(
        QuoteDraft(term_months=12),
        [PriceEdit(EditField.TOTAL, "1200"), PriceEdit(EditField.MONTHLY, "90"), PriceEdit(EditField.TERM, "10")],
    )

    assert draft.last_edited_price_field == PriceField.MONTHLY
    assert draft.price_monthly_cents == 9000
    assert draft.price_total_cents == 90000


def test_zero_term_clears_derived_field():
    monthly_truth = QuoteDraft(price_monthly_cents=8331, price_total_cents=299916, last_edited_price_field=PriceField.MONTHLY)
    total_truth = QuoteDraft(price_monthly_cents=8331, price_total_cents=299916, last_edited_price_field=PriceField.TOTAL)

    cleared_total = apply_edit(monthly_truth, PriceEdit(EditField.TERM, "0"))
    cleared_monthly = apply_edit(total_truth, PriceEdit(EditField.TERM, "0"))

    assert cleared_total.price_total_cents is None
    assert cleared_total.price_monthly_cents == 8331
    assert cleared_monthly.price_monthly_cents is None
    assert cleared_monthly.price_total_cents == 299916
    assert is_consistent(cleared_total)


@pytest.mark.parametrize(
    "edit,reason",
    [
        (PriceEdit(EditField.TOTAL, "abc"), ValidationReason.INVALID_AMOUNT),
        (PriceEdit(EditField.MONTHLY, ""), ValidationReason.INVALID_AMOUNT),
        (PriceEdit(EditField.TERM, "twelve"), ValidationReason.INVALID_TERM),
        (PriceEdit(EditField.TERM, "-3"), ValidationReason.INVALID_TERM),
        (PriceEdit(EditField.EXPIRATION_MILES, "far"), ValidationReason.INVALID_AMOUNT),
    ],
)
def test_invalid_edit_leaves_draft_unchanged(edit, reason):
    draft = QuoteDraft(price_total_cents=299900, price_monthly_cents=8331, term_months=36)
    snapshot = QuoteDraft(**vars(draft))

    with pytest.raises(ValidationError) as exc:
        apply_edit(draft, edit)

    assert exc.value.reason == reason
    assert draft == snapshot


def test_deductible_and_miles_are_clamped_and_do_not_touch_prices():
    draft = QuoteDraft(price_total_cents=299900, price_monthly_cents=8331, term_months=36)

    updated = apply_edits(
        draft,
        [PriceEdit(EditField.DEDUCTIBLE, "-50"), PriceEdit(EditField.EXPIRATION_MILES, "120,000")],
    )

    assert updated.deductible_cents == 0
    assert updated.expiration_miles == 120000
    assert updated.price_total_cents == 299900
    assert updated.price_monthly_cents == 8331


def test_quote_prices_multiplies_monthly_by_term():
    prices = quote_prices("83.31", 36)

    assert prices.price_monthly_cents == 8331
    assert prices.price_total_cents == 299916


def test_quote_prices_requires_positive_term():
    with pytest.raises(ValidationError) as exc:
        quote_prices("83.31", 0)

    assert exc.value.reason == ValidationReason.INVALID_TERM
    assert exc.value.field == "termMonths"


@pytest.mark.parametrize("monthly", ["0", "0.00", "0.004"])
def test_quote_prices_rejects_zero_monthly_price(monthly):
    """A quote with no monthly instalment could never be signed"""
    with pytest.raises(ValidationError) as exc:
        quote_prices(monthly, 36)

    assert exc.value.reason == ValidationReason.INVALID_AMOUNT
    assert exc.value.field == "priceMonthly"


def test_quote_prices_accepts_one_cent():
    prices = quote_prices("0.01", 12)

    assert prices.price_monthly_cents == 1
    assert prices.price_total_cents == 12
