"""
Amortization Module

Fixed monthly payment calculation for annuity loans, payment quotes and
month-by-month amortization schedules. All arithmetic uses Decimal and
every monetary result is rounded to currency precision.
"""

from decimal import Decimal, localcontext
from dataclasses import dataclass
from typing import List

from .currency import NumberLike, quantize_currency, to_decimal
from .errors import ValidationError


MONTHS_PER_YEAR = Decimal('12')
PERCENT = Decimal('100')

# Digits kept beyond the leading zeros of a tiny monthly rate
GUARD_DIGITS = 28
# Below 10^-MAX_RATE_SCALE the interest on any payment is far below a cent
MAX_RATE_SCALE = 1000


@dataclass(frozen=True)
class PaymentQuote:
    """Monthly payment plus the totals paid over the whole term"""
    amount: Decimal
    interest_rate: Decimal
    term_in_months: int
    monthly_payment: Decimal
    total_payment: Decimal
    total_interest: Decimal


@dataclass(frozen=True)
class AmortizationEntry:
    """Single month in an amortization schedule"""
    payment_number: int
    payment_amount: Decimal
    principal_amount: Decimal
    interest_amount: Decimal
    remaining_balance: Decimal


def monthly_rate_for(annual_rate_percent: Decimal) -> Decimal:
    """Convert an annual percentage rate to a monthly fraction (12% -> 0.01)"""
    return to_decimal(annual_rate_percent) / MONTHS_PER_YEAR / PERCENT


def compute_monthly_payment(
    principal: NumberLike,
    annual_rate_percent: NumberLike,
    term_months: int
) -> Decimal:
    """
    Compute the fixed monthly payment for an annuity loan

    Standard loan payment formula: P * [r(1+r)^n] / [(1+r)^n - 1]
    where P = principal, r = monthly rate, n = number of months.
    A zero rate degenerates to straight division.

    Args:
        principal: Loan amount
        annual_rate_percent: Annual interest rate in percent (e.g. 12 for 12%)
        term_months: Number of monthly payments, at least 1

    Returns:
        Monthly payment rounded to 2 places, half away from zero

    Raises:
        ValidationError: If term_months is below 1
    """
    if isinstance(term_months, bool) or not isinstance(term_months, int) or term_months < 1:
        raise ValidationError("term must be at least 1 month")

    principal = to_decimal(principal)
    monthly_rate = monthly_rate_for(annual_rate_percent)

    leading_zeros = -monthly_rate.adjusted() if monthly_rate else 0
    if monthly_rate == Decimal('0') or leading_zeros > MAX_RATE_SCALE:
        return quantize_currency(principal / Decimal(term_months))

    # 1 + r must hold every digit of r, or (1 + r)^n - 1 collapses to zero
    with localcontext() as ctx:
        ctx.prec += max(0, leading_zeros) + GUARD_DIGITS
        factor = (Decimal('1') + monthly_rate) ** term_months
        payment = principal * (monthly_rate * factor) / (factor - Decimal('1'))
        return quantize_currency(payment)


def quote_payment(
    principal: NumberLike,
    annual_rate_percent: NumberLike,
    term_months: int
) -> PaymentQuote:
    """Monthly payment together with total repaid and total interest"""
    principal = to_decimal(principal)
    rate = to_decimal(annual_rate_percent)
    monthly_payment = compute_monthly_payment(principal, rate, term_months)
    total_payment = quantize_currency(monthly_payment * term_months)

    return PaymentQuote(
        amount=principal,
        interest_rate=rate,
        term_in_months=term_months,
        monthly_payment=monthly_payment,
        total_payment=total_payment,
        total_interest=quantize_currency(total_payment - principal)
    )


def build_schedule(
    principal: NumberLike,
    annual_rate_percent: NumberLike,
    term_months: int
) -> List[AmortizationEntry]:
    """
    Generate the equal-installment amortization schedule

    Interest for each month is charged on the remaining balance. The final
    payment absorbs accumulated rounding so the balance ends at exactly zero.
    """
    payment_amount = compute_monthly_payment(principal, annual_rate_percent, term_months)
    remaining_balance = quantize_currency(to_decimal(principal))
    monthly_rate = monthly_rate_for(annual_rate_percent)

    schedule = []
    for payment_number in range(1, term_months + 1):
        interest_amount = quantize_currency(remaining_balance * monthly_rate)
        principal_amount = payment_amount - interest_amount

        if payment_number == term_months or principal_amount > remaining_balance:
            principal_amount = remaining_balance
            payment = principal_amount + interest_amount
        else:
            payment = payment_amount

        remaining_balance = remaining_balance - principal_amount

        schedule.append(AmortizationEntry(
            payment_number=payment_number,
            payment_amount=payment,
            principal_amount=principal_amount,
            interest_amount=interest_amount,
            remaining_balance=remaining_balance
        ))

        if remaining_balance == Decimal('0'):
            break

    return schedule
