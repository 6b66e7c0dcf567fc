"""Lead → policy conversion: default derivation and payment-schedule validation"""

from datetime import date
from typing import Any, Dict, Optional

from quote_engine.config import settings
from quote_engine.domain.exceptions import ValidationError, ValidationReason
from quote_engine.domain.models import PaymentOption, PolicyFormInput, PolicyTerms
from quote_engine.utils.date_utils import add_years


def _resolve_payment_option(form: PolicyFormInput) -> PaymentOption:
    if form.payment_option is not None:
        return form.payment_option
    if form.monthly_payment_cents is not None:
        return PaymentOption.MONTHLY
    return PaymentOption.ONE_TIME


def _expiration_date_is_manual(form: PolicyFormInput) -> bool:
    # Manual only with an actual date; an explicit False still recomputes the default
    if form.expiration_date is None:
        return False
    if form.expiration_date_manually_set is not None:
        return form.expiration_date_manually_set
    return True


def prepare_policy(
    form: PolicyFormInput,
    odometer: Optional[int] = None,
    today: Optional[date] = None,
) -> PolicyTerms:
    """
    Validate conversion input and derive the policy defaults.

    Rules:
    - Monthly plans need a positive monthly payment and payment count
    - One-time plans drop the monthly schedule fields
    - Expiration miles default to odometer + 100,000
    - Expiration date defaults to start date + 5 years unless set by an operator

    Raises:
        ValidationError: MissingPaymentDetails for an incomplete monthly schedule
    """
    payment_option = _resolve_payment_option(form)
    monthly_payment = form.monthly_payment_cents
    total_payments = form.total_payments

    if payment_option == PaymentOption.MONTHLY:
        if monthly_payment is None or monthly_payment <= 0:
            raise ValidationError(
                ValidationReason.MISSING_PAYMENT_DETAILS,
                "Monthly plans need a monthly payment amount",
                field="monthlyPayment",
            )
        if total_payments is None or total_payments <= 0:
            raise ValidationError(
                ValidationReason.MISSING_PAYMENT_DETAILS,
                "Monthly plans need the total number of payments",
                field="totalPayments",
            )
    else:
        monthly_payment = None
        total_payments = None

    start_date = form.policy_start_date or today or date.today()

    manual_expiration = _expiration_date_is_manual(form)
    if manual_expiration:
        expiration_date = form.expiration_date
    else:
        expiration_date = add_years(start_date, settings.policy_term_years)

    expiration_miles = form.expiration_miles
    if expiration_miles is None and odometer is not None:
        expiration_miles = odometer + settings.expiration_miles_allowance

    return PolicyTerms(
        package=form.package,
        policy_start_date=start_date,
        expiration_date=expiration_date,
        expiration_date_manually_set=manual_expiration,
        expiration_miles=expiration_miles,
        deductible_cents=form.deductible_cents,
        total_premium_cents=form.total_premium_cents,
        down_payment_cents=form.down_payment_cents,
        monthly_payment_cents=monthly_payment,
        total_payments=total_payments,
        payment_option=payment_option,
    )


def policy_form_from_quote(
    plan: str,
    deductible_cents: Optional[int],
    term_months: Optional[int],
    price_monthly_cents: int,
    price_total_cents: int,
    breakdown: Optional[Dict[str, Any]],
    start_date: date,
) -> PolicyFormInput:
    """Build conversion input from a signed quote (down payment = first instalment)"""
    breakdown = breakdown or {}
    term = term_months if term_months and term_months > 0 else None

    option_raw = breakdown.get("paymentOption")
    if option_raw:
        payment_option = PaymentOption(option_raw)
    else:
        payment_option = PaymentOption.MONTHLY if term else PaymentOption.ONE_TIME

    miles = breakdown.get("expirationMiles")

    return PolicyFormInput(
        package=plan,
        policy_start_date=start_date,
        expiration_miles=int(miles) if miles is not None else None,
        deductible_cents=deductible_cents,
        total_premium_cents=price_total_cents,
        down_payment_cents=price_monthly_cents,
        monthly_payment_cents=price_monthly_cents,
        total_payments=term,
        payment_option=payment_option,
    )
