"""
Currency Arithmetic Module

Decimal precision and rounding rules for monetary values. Amounts are
stored with two decimal places and rounded half away from zero.
NEVER uses float for monetary values.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation, getcontext
from typing import Union
import re

# Set global decimal context for financial precision
getcontext().prec = 28

CURRENCY_PRECISION = 2
CURRENCY_SYMBOL = "$"

NumberLike = Union[Decimal, int, float, str]


def to_decimal(value: NumberLike) -> Decimal:
    """
    Convert a number or numeric string to Decimal

    Floats go through str() so 0.1 becomes Decimal('0.1') rather than its
    binary expansion. Strings may carry currency symbols, whitespace and
    thousands separators.

    Raises:
        ValueError: If the value cannot be converted
    """
    if isinstance(value, bool):
        raise ValueError(f"Cannot convert {value!r} to Decimal")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        result = decimal_from_string(value)
    else:
        raise ValueError(f"Cannot convert {value!r} to Decimal")

    if not result.is_finite():
        raise ValueError(f"Cannot convert {value!r} to a finite Decimal")
    return result


def decimal_from_string(value: str) -> Decimal:
    """
    Safely convert string to Decimal, handling common formats

    Args:
        value: String representation of number

    Returns:
        Decimal value

    Raises:
        ValueError: If string cannot be converted to valid Decimal
    """
    if not value or not isinstance(value, str):
        raise ValueError("Value must be a non-empty string")

    # Remove currency symbols and whitespace
    clean_value = re.sub(r'[^\d.,\-+]', '', value.strip())

    # Both comma and dot: comma is the thousands separator
    if ',' in clean_value and '.' in clean_value:
        clean_value = clean_value.replace(',', '')
    elif ',' in clean_value and clean_value.count(',') == 1:
        parts = clean_value.split(',')
        if len(parts[1]) <= 2:
            clean_value = clean_value.replace(',', '.')
        else:
            clean_value = clean_value.replace(',', '')
    elif ',' in clean_value:
        clean_value = clean_value.replace(',', '')

    try:
        return Decimal(clean_value)
    except InvalidOperation:
        raise ValueError(f"Cannot convert '{value}' to Decimal")


def quantize_currency(value: Decimal) -> Decimal:
    """Round to currency precision, half away from zero"""
    if not isinstance(value, Decimal):
        value = to_decimal(value)
    return value.quantize(
        Decimal('0.1') ** CURRENCY_PRECISION,
        rounding=ROUND_HALF_UP
    )


def format_currency(value: Decimal) -> str:
    """Format for display, e.g. $12,500.00"""
    amount = quantize_currency(value)
    sign = "-" if amount < 0 else ""
    return f"{sign}{CURRENCY_SYMBOL}{abs(amount):,.{CURRENCY_PRECISION}f}"
