"""Unit tests for lead → policy conversion rules"""

import pytest
from datetime import date
from quote_engine.domain.conversion import policy_form_from_quote, prepare_policy
from quote_engine.domain.exceptions import ValidationError, ValidationReason
from quote_engine.domain.models import PaymentOption, PolicyFormInput
from quote_engine.utils.date_utils import add_years


def _monthly_form(**overrides) -> PolicyFormInput:
    fields = dict(
        package="gold",
        policy_start_date=date(2024, 3, 15),
        monthly_payment_cents=8331,
        total_payments=36,
        total_premium_cents=299916,
        payment_option=PaymentOption.MONTHLY,
    )
    fields.update(overrides)
    return PolicyFormInput(**fields)


def test_monthly_plan_without_total_payments_is_rejected():
    with pytest.raises(ValidationError) as exc:
        prepare_policy(_monthly_form(total_payments=None))

    assert exc.value.reason == ValidationReason.MISSING_PAYMENT_DETAILS
    assert exc.value.field == "totalPayments"


@pytest.mark.parametrize("monthly", [None, 0, -100])
def test_monthly_plan_needs_positive_monthly_payment(monthly):
    with pytest.raises(ValidationError) as exc:
        prepare_policy(_monthly_form(monthly_payment_cents=monthly))

    assert exc.value.reason == ValidationReason.MISSING_PAYMENT_DETAILS
    assert exc.value.field == "monthlyPayment"


def test_default_expiration_is_five_years_after_start():
    terms = prepare_policy(_monthly_form())

    assert terms.expiration_date == date(2029, 3, 15)
    assert terms.expiration_date_manually_set is False


def test_default_expiration_from_leap_day_clamps_to_feb_28():
    terms = prepare_policy(_monthly_form(policy_start_date=date(2024, 2, 29)))

    assert terms.expiration_date == date(2029, 2, 28)


def test_operator_expiration_date_is_kept():
    terms = prepare_policy(_monthly_form(expiration_date=date(2027, 1, 1)))

    assert terms.expiration_date == date(2027, 1, 1)
    assert terms.expiration_date_manually_set is True


def test_explicit_unset_flag_recomputes_expiration():
    terms = prepare_policy(_monthly_form(expiration_date=date(2027, 1, 1), expiration_date_manually_set=False))

    assert terms.expiration_date == date(2029, 3, 15)
    assert terms.expiration_date_manually_set is False


def test_manual_flag_without_date_falls_back_to_default():
    terms = prepare_policy(_monthly_form(expiration_date_manually_set=True))

    assert terms.expiration_date == date(2029, 3, 15)
    assert terms.expiration_date_manually_set is False


def test_expiration_miles_default_from_odometer():
    assert prepare_policy(_monthly_form(), odometer=42000).expiration_miles == 142000
    assert prepare_policy(_monthly_form(expiration_miles=90000), odometer=42000).expiration_miles == 90000
    assert prepare_policy(_monthly_form()).expiration_miles is None


def test_one_time_plan_drops_monthly_schedule():
    terms = prepare_policy(_monthly_form(payment_option=PaymentOption.ONE_TIME))

    assert terms.payment_option == PaymentOption.ONE_TIME
    assert terms.monthly_payment_cents is None
    assert terms.total_payments is None
    assert terms.total_premium_cents == 299916


def test_payment_option_inferred_from_monthly_payment():
    assert prepare_policy(_monthly_form(payment_option=None)).payment_option == PaymentOption.MONTHLY
    one_time = PolicyFormInput(total_premium_cents=250000)
    assert prepare_policy(one_time, today=date(2025, 1, 2)).payment_option == PaymentOption.ONE_TIME


def test_start_date_defaults_to_today():
    terms = prepare_policy(PolicyFormInput(total_premium_cents=250000), today=date(2025, 1, 2))

    assert terms.policy_start_date == date(2025, 1, 2)
    assert terms.expiration_date == date(2030, 1, 2)


def test_policy_form_from_quote_uses_quote_terms():
    form = policy_form_from_quote(
        plan="silver",
        deductible_cents=10000,
        term_months=36,
        price_monthly_cents=8331,
        price_total_cents=299916,
        breakdown={"expirationMiles": 150000},
        start_date=date(2025, 6, 1),
    )

    assert form.package == "silver"
    assert form.payment_option == PaymentOption.MONTHLY
    assert form.down_payment_cents == 8331
    assert form.monthly_payment_cents == 8331
    assert form.total_payments == 36
    assert form.expiration_miles == 150000
    assert prepare_policy(form).expiration_date == date(2030, 6, 1)


def test_policy_form_from_quote_honours_one_time_breakdown():
    form = policy_form_from_quote("basic", 0, 36, 8331, 299916, {"paymentOption": "one-time"}, date(2025, 6, 1))

    assert prepare_policy(form).payment_option == PaymentOption.ONE_TIME


def test_add_years():
    assert add_years(date(2024, 3, 15), 5) == date(2029, 3, 15)
    assert add_years(date(2024, 2, 29), 4) == date(2028, 2, 29)
    assert add_years(date(2024, 2, 29), 1) == date(2025, 2, 28)
