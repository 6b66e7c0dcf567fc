"""Conversion between decimal dollar input and integer cent storage"""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union

from quote_engine.domain.exceptions import InvalidAmountError

CENT = Decimal("0.01")

# Currency symbols, thousands separators and whitespace are tolerated in input
_STRIP_PATTERN = re.compile(r"[\s,$€£¥]")
_NUMERIC_PATTERN = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)$")


def _round_to_cents(dollars: Decimal) -> int:
    # ROUND_HALF_UP on Decimal rounds half away from zero for negatives too
    return int((dollars * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def parse_decimal_to_cents(text: str, field: Optional[str] = None) -> int:
    """
    Parse user-entered dollars into integer cents.

    Example:
        "$1,234.565" → 123457
        "-0.005"     → -1

    Raises:
        InvalidAmountError: empty input or non-numeric residue
    """
    if not isinstance(text, str):
        raise InvalidAmountError(text, field=field)

    cleaned = _STRIP_PATTERN.sub("", text)
    if not _NUMERIC_PATTERN.match(cleaned):
        raise InvalidAmountError(text, field=field)

    return _round_to_cents(Decimal(cleaned))


def format_cents_to_decimal(cents: int) -> str:
    """Format cents as a plain decimal string with exactly two places"""
    return f"{Decimal(cents) / 100:.2f}"


def dollars_to_cents(value: Union[str, int, float, Decimal], field: Optional[str] = None) -> int:
    """Convert a dollar amount from JSON (number or string) into cents"""
    if isinstance(value, bool):
        raise InvalidAmountError(value, field=field)
    if isinstance(value, str):
        return parse_decimal_to_cents(value, field=field)
    try:
        # str() first so floats like 19.99 are not widened to binary noise
        dollars = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise InvalidAmountError(value, field=field) from e
    if not dollars.is_finite():
        raise InvalidAmountError(value, field=field)
    return _round_to_cents(dollars)


def divide_cents(total_cents: int, parts: int) -> int:
    """Divide cents into equal parts, rounding half away from zero"""
    if parts <= 0:
        raise ValueError("parts must be positive")
    return int((Decimal(total_cents) / Decimal(parts)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_currency(cents: Optional[int]) -> str:
    """Display helper: 123456 → "$1,234.56" """
    if cents is None:
        return "N/A"
    sign = "-" if cents < 0 else ""
    return f"{sign}${Decimal(abs(cents)) / 100:,.2f}"
