"""
Loan Application Module

Orchestrates loan requests and reviews: validation, payment calculation and
the review lifecycle, persisted through the user and loan stores. Produces
response records with the owner's display data resolved by id.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional
import uuid

from .amortization import (
    AmortizationEntry, PaymentQuote, build_schedule, compute_monthly_payment, quote_payment
)
from .currency import NumberLike
from .errors import ConflictError, NotFoundError
from .loans import Loan, LoanLifecycle, LoanStatus, LoanStore, status_label
from .users import User, UserStore
from .validation import LoanLimits, LoanRequest, LoanRequestValidator


UNKNOWN_OWNER_NAME = "Unknown user"
UNKNOWN_OWNER_EMAIL = ""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class LoanRecord:
    """Loan as returned to callers, with owner display data"""
    id: str
    amount: Decimal
    interest_rate: Decimal
    term_in_months: int
    monthly_payment: Decimal
    status: LoanStatus
    status_label: str
    request_date: datetime
    review_date: Optional[datetime]
    admin_comments: Optional[str]
    owner_id: str
    owner_name: str
    owner_email: str

    @classmethod
    def from_loan(cls, loan: Loan, owner: Optional[User]) -> 'LoanRecord':
        return cls(
            id=loan.id,
            amount=loan.amount,
            interest_rate=loan.interest_rate,
            term_in_months=loan.term_in_months,
            monthly_payment=loan.monthly_payment,
            status=loan.status,
            status_label=status_label(loan.status),
            request_date=loan.request_date,
            review_date=loan.review_date,
            admin_comments=loan.admin_comments,
            owner_id=loan.owner_id,
            owner_name=owner.full_name if owner else UNKNOWN_OWNER_NAME,
            owner_email=owner.email if owner else UNKNOWN_OWNER_EMAIL
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "amount": str(self.amount),
            "interest_rate": str(self.interest_rate),
            "term_in_months": self.term_in_months,
            "monthly_payment": str(self.monthly_payment),
            "status": self.status.value,
            "status_label": self.status_label,
            "request_date": self.request_date.isoformat(),
            "review_date": self.review_date.isoformat() if self.review_date else None,
            "admin_comments": self.admin_comments,
            "owner_id": self.owner_id,
            "owner_name": self.owner_name,
            "owner_email": self.owner_email,
        }


@dataclass(frozen=True)
class UserSummary:
    """User profile with loan counts by status"""
    user_id: str
    full_name: str
    email: str
    is_admin: bool
    created_at: datetime
    total_loans: int
    pending_loans: int
    approved_loans: int
    rejected_loans: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "full_name": self.full_name,
            "email": self.email,
            "is_admin": self.is_admin,
            "created_at": self.created_at.isoformat(),
            "total_loans": self.total_loans,
            "pending_loans": self.pending_loans,
            "approved_loans": self.approved_loans,
            "rejected_loans": self.rejected_loans,
        }


class LoanApplicationService:
    """
    Loan request and review operations

    Authorization (owner or admin) is the caller's concern; this service
    only checks that referenced users and loans exist.
    """

    def __init__(
        self,
        user_store: UserStore,
        loan_store: LoanStore,
        limits: Optional[LoanLimits] = None,
        clock: Callable[[], datetime] = _utcnow
    ):
        self.user_store = user_store
        self.loan_store = loan_store
        self.validator = LoanRequestValidator(limits)
        self.clock = clock

    def create_loan(self, user_id: str, request: LoanRequest) -> LoanRecord:
        """
        Request a new loan for a user

        Raises:
            NotFoundError: If the user does not exist
            ValidationError: If the request is out of bounds
        """
        user = self.user_store.get_by_id(user_id)
        if not user:
            raise NotFoundError("user", user_id)

        self.validator.validate(request)

        monthly_payment = compute_monthly_payment(
            request.amount, request.interest_rate, request.term_in_months
        )

        now = self.clock()
        loan = Loan(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            owner_id=user.id,
            amount=request.amount,
            interest_rate=request.interest_rate,
            term_in_months=request.term_in_months,
            monthly_payment=monthly_payment,
            status=LoanStatus.PENDING,
            request_date=now
        )
        self.loan_store.create(loan)

        return LoanRecord.from_loan(loan, user)

    def review_loan(self, loan_id: str, status: LoanStatus, comments: Optional[str] = None) -> LoanRecord:
        """
        Approve or reject a pending loan

        The write is conditional on the stored loan still being pending, so
        of two concurrent reviewers only one succeeds.

        Raises:
            NotFoundError: If the loan does not exist
            ConflictError: If the loan was already reviewed
            ValidationError: If the target status is Pending
        """
        loan = self.loan_store.get_by_id(loan_id)
        if not loan:
            raise NotFoundError("loan", loan_id)

        reviewed = LoanLifecycle.review(loan, status, comments, self.clock())

        if not self.loan_store.update_if_status(reviewed, LoanLifecycle.INITIAL_STATE):
            raise ConflictError(
                f"Loan {loan_id} has already been reviewed",
                {"loan_id": loan_id}
            )

        return self._record(reviewed)

    def get_loans_for_user(self, user_id: str) -> List[LoanRecord]:
        owner = self.user_store.get_by_id(user_id)
        return [LoanRecord.from_loan(loan, owner) for loan in self.loan_store.get_all_for_user(user_id)]

    def get_all_loans(self, status: Optional[LoanStatus] = None) -> List[LoanRecord]:
        if status is None:
            loans = self.loan_store.get_all()
        else:
            loans = self.loan_store.get_by_status(status)

        owners: Dict[str, Optional[User]] = {}
        records = []
        for loan in loans:
            if loan.owner_id not in owners:
                owners[loan.owner_id] = self.user_store.get_by_id(loan.owner_id)
            records.append(LoanRecord.from_loan(loan, owners[loan.owner_id]))
        return records

    def get_loan_by_id(self, loan_id: str) -> LoanRecord:
        loan = self.loan_store.get_by_id(loan_id)
        if not loan:
            raise NotFoundError("loan", loan_id)
        return self._record(loan)

    def delete_loan(self, loan_id: str) -> bool:
        if not self.loan_store.exists(loan_id):
            raise NotFoundError("loan", loan_id)
        return self.loan_store.delete(loan_id)

    def count_pending(self) -> int:
        return self.loan_store.count_pending()

    def summarize_user(self, user_id: str) -> UserSummary:
        user = self.user_store.get_by_id(user_id)
        if not user:
            raise NotFoundError("user", user_id)

        loans = self.loan_store.get_all_for_user(user_id)
        by_status = {status: 0 for status in LoanStatus}
        for loan in loans:
            by_status[loan.status] += 1

        return UserSummary(
            user_id=user.id,
            full_name=user.full_name,
            email=user.email,
            is_admin=user.is_admin,
            created_at=user.created_at,
            total_loans=len(loans),
            pending_loans=by_status[LoanStatus.PENDING],
            approved_loans=by_status[LoanStatus.APPROVED],
            rejected_loans=by_status[LoanStatus.REJECTED]
        )

    def calculate_monthly_payment(self, amount: NumberLike, interest_rate: NumberLike, term_in_months: int) -> Decimal:
        """Stateless payment calculation; no store access"""
        return compute_monthly_payment(amount, interest_rate, term_in_months)

    def quote_payment(self, request: LoanRequest) -> PaymentQuote:
        """Validate a request and quote its payment and totals"""
        self.validator.validate(request)
        return quote_payment(request.amount, request.interest_rate, request.term_in_months)

    def schedule_for(self, request: LoanRequest) -> List[AmortizationEntry]:
        """Validate a request and lay out its month-by-month schedule"""
        self.validator.validate(request)
        return build_schedule(request.amount, request.interest_rate, request.term_in_months)

    def _record(self, loan: Loan) -> LoanRecord:
        return LoanRecord.from_loan(loan, self.user_store.get_by_id(loan.owner_id))
