"""
Pydantic schemas for API requests and responses
"""

from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from ..amortization import AmortizationEntry, PaymentQuote
from ..loans import LoanStatus
from ..validation import LoanRequest


# Auth schemas
class RegisterRequest(BaseModel):
    full_name: str
    email: str
    password: str


class LoginRequest(BaseModel):
    email: str
    password: str


# Loan schemas
class CreateLoanRequest(BaseModel):
    amount: Decimal = Field(..., description="Loan amount")
    interest_rate: Decimal = Field(..., description="Annual interest rate in percent, e.g. 12.5")
    term_in_months: int = Field(..., description="Number of monthly payments")

    def to_loan_request(self) -> LoanRequest:
        return LoanRequest.of(self.amount, self.interest_rate, self.term_in_months)


class ReviewLoanRequest(BaseModel):
    status: str = Field(..., description="Review outcome (approved, rejected)")
    admin_comments: Optional[str] = Field(None, max_length=500)

    @field_validator("status")
    @classmethod
    def status_is_known(cls, value: str) -> str:
        if value.strip().lower() not in {s.value for s in LoanStatus}:
            raise ValueError("status must be one of pending, approved, rejected")
        return value

    def to_status(self) -> LoanStatus:
        return LoanStatus.parse(self.status)


class PaymentQuoteModel(BaseModel):
    amount: str
    interest_rate: str
    term_in_months: int
    monthly_payment: str
    total_payment: str
    total_interest: str

    @classmethod
    def from_quote(cls, quote: PaymentQuote) -> 'PaymentQuoteModel':
        return cls(
            amount=str(quote.amount),
            interest_rate=str(quote.interest_rate),
            term_in_months=quote.term_in_months,
            monthly_payment=str(quote.monthly_payment),
            total_payment=str(quote.total_payment),
            total_interest=str(quote.total_interest)
        )


class AmortizationEntryModel(BaseModel):
    payment_number: int
    payment_amount: str
    principal_amount: str
    interest_amount: str
    remaining_balance: str

    @classmethod
    def from_entry(cls, entry: AmortizationEntry) -> 'AmortizationEntryModel':
        return cls(
            payment_number=entry.payment_number,
            payment_amount=str(entry.payment_amount),
            principal_amount=str(entry.principal_amount),
            interest_amount=str(entry.interest_amount),
            remaining_balance=str(entry.remaining_balance)
        )
