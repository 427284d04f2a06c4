"""
Loan Request Validation Module

Numeric bounds applied to loan requests before anything is persisted.
Rules are checked in a fixed order and the first violation is raised.
"""

from decimal import Decimal
from dataclasses import dataclass

from .currency import NumberLike, to_decimal
from .errors import ValidationError


@dataclass(frozen=True)
class LoanLimits:
    """Bounds for loan requests"""
    max_amount: Decimal = Decimal('100000000')
    min_interest_rate: Decimal = Decimal('0')
    max_interest_rate: Decimal = Decimal('50')
    min_term_months: int = 1
    max_term_months: int = 240


@dataclass
class LoanRequest:
    """Loan creation input: amount, annual rate in percent and term"""
    amount: Decimal
    interest_rate: Decimal
    term_in_months: int

    @classmethod
    def of(cls, amount: NumberLike, interest_rate: NumberLike, term_in_months: int) -> 'LoanRequest':
        """Build a request from loosely typed values, rejecting non-numbers"""
        try:
            amount = to_decimal(amount)
        except ValueError:
            raise ValidationError("amount must be a number", {"amount": str(amount)})
        try:
            interest_rate = to_decimal(interest_rate)
        except ValueError:
            raise ValidationError("interest rate must be a number", {"interest_rate": str(interest_rate)})
        return cls(amount=amount, interest_rate=interest_rate, term_in_months=term_in_months)


def _format_percent(value: Decimal) -> str:
    # 50 -> "50", 12.50 -> "12.5"
    return format(value.normalize(), 'f')


class LoanRequestValidator:
    """Validates loan requests against a set of LoanLimits"""

    def __init__(self, limits: LoanLimits = None):
        self.limits = limits or LoanLimits()

    def validate(self, request: LoanRequest) -> None:
        """
        Validate a loan request

        Raises:
            ValidationError: On the first rule the request violates
        """
        limits = self.limits
        amount = request.amount
        rate = request.interest_rate
        term = request.term_in_months

        if amount <= Decimal('0'):
            raise ValidationError("amount must be greater than 0", {"amount": str(amount)})

        if amount > limits.max_amount:
            raise ValidationError(
                "amount exceeds the maximum allowed",
                {"amount": str(amount), "max_amount": str(limits.max_amount)}
            )

        if rate < limits.min_interest_rate or rate > limits.max_interest_rate:
            raise ValidationError(
                f"interest rate must be between {_format_percent(limits.min_interest_rate)}% "
                f"and {_format_percent(limits.max_interest_rate)}%",
                {"interest_rate": str(rate)}
            )

        if (isinstance(term, bool) or not isinstance(term, int)
                or term < limits.min_term_months or term > limits.max_term_months):
            raise ValidationError(
                f"term must be between {limits.min_term_months} and "
                f"{limits.max_term_months} months",
                {"term_in_months": term}
            )
