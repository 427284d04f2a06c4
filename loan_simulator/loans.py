"""
Loan Module

Loan entity, review lifecycle (Pending -> Approved/Rejected) and the loan
store. A loan's monthly payment is fixed when it is requested and its status
changes at most once.
"""

from decimal import Decimal
from datetime import datetime
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional
from enum import Enum

from .storage import StorageInterface, StorageRecord
from .errors import ConflictError, ValidationError


class LoanStatus(Enum):
    """Loan review states"""
    PENDING = "pending"      # Awaiting review
    APPROVED = "approved"    # Terminal
    REJECTED = "rejected"    # Terminal

    @classmethod
    def parse(cls, value: Any) -> 'LoanStatus':
        """Accept a LoanStatus, its value or its name (case-insensitive)"""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            text = value.strip().lower()
            for status in cls:
                if text == status.value:
                    return status
        raise ValidationError(f"Invalid loan status: {value!r}", {"status": str(value)})


_STATUS_LABELS = {
    LoanStatus.PENDING: "Pending",
    LoanStatus.APPROVED: "Approved",
    LoanStatus.REJECTED: "Rejected",
}


def status_label(status: LoanStatus) -> str:
    """Display label for a loan status"""
    return _STATUS_LABELS[status]


@dataclass
class Loan(StorageRecord):
    """Requested loan with its computed payment and review outcome"""
    owner_id: str
    amount: Decimal
    interest_rate: Decimal              # Annual, in percent (12 = 12%)
    term_in_months: int
    monthly_payment: Decimal
    status: LoanStatus = LoanStatus.PENDING
    request_date: Optional[datetime] = None
    review_date: Optional[datetime] = None
    admin_comments: Optional[str] = None

    def __post_init__(self):
        if self.request_date is None:
            self.request_date = self.created_at

    @property
    def is_pending(self) -> bool:
        return self.status == LoanStatus.PENDING

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result['status'] = self.status.value
        result['request_date'] = self.request_date.isoformat()
        result['review_date'] = self.review_date.isoformat() if self.review_date else None
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Loan':
        return cls(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            owner_id=data['owner_id'],
            amount=Decimal(data['amount']),
            interest_rate=Decimal(data['interest_rate']),
            term_in_months=int(data['term_in_months']),
            monthly_payment=Decimal(data['monthly_payment']),
            status=LoanStatus(data['status']),
            request_date=datetime.fromisoformat(data['request_date']),
            review_date=datetime.fromisoformat(data['review_date']) if data.get('review_date') else None,
            admin_comments=data.get('admin_comments')
        )


class LoanLifecycle:
    """
    Review state machine

    Pending --review(Approved)--> Approved
    Pending --review(Rejected)--> Rejected

    Approved and Rejected are terminal. Pending is never a review target.
    """

    INITIAL_STATE = LoanStatus.PENDING
    TERMINAL_STATES = frozenset({LoanStatus.APPROVED, LoanStatus.REJECTED})

    @classmethod
    def review(
        cls,
        loan: Loan,
        target_status: LoanStatus,
        comments: Optional[str],
        reviewed_at: datetime
    ) -> Loan:
        """
        Apply the single allowed transition

        Returns:
            A reviewed copy of the loan; the argument is left untouched

        Raises:
            ConflictError: If the loan has already been reviewed
            ValidationError: If the target status is Pending
        """
        if not loan.is_pending:
            raise ConflictError(
                f"Loan {loan.id} has already been reviewed",
                {"loan_id": loan.id, "status": loan.status.value}
            )

        if target_status not in cls.TERMINAL_STATES:
            raise ValidationError(
                "cannot set status to Pending",
                {"loan_id": loan.id, "status": target_status.value}
            )

        return replace(
            loan,
            status=target_status,
            review_date=reviewed_at,
            admin_comments=comments,
            updated_at=reviewed_at
        )


class LoanStore:
    """Loan persistence on top of a StorageInterface"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = "loans"

    def get_by_id(self, loan_id: str) -> Optional[Loan]:
        data = self.storage.load(self.table_name, loan_id)
        if data:
            return Loan.from_dict(data)
        return None

    def get_all_for_user(self, user_id: str) -> List[Loan]:
        """All loans owned by a user, newest request first"""
        return self._sorted(self.storage.find(self.table_name, {"owner_id": user_id}))

    def get_all(self) -> List[Loan]:
        return self._sorted(self.storage.load_all(self.table_name))

    def get_by_status(self, status: LoanStatus) -> List[Loan]:
        return self._sorted(self.storage.find(self.table_name, {"status": status.value}))

    def count_pending(self) -> int:
        return len(self.storage.find(self.table_name, {"status": LoanStatus.PENDING.value}))

    def exists(self, loan_id: str) -> bool:
        return self.storage.exists(self.table_name, loan_id)

    def create(self, loan: Loan) -> Loan:
        if self.storage.exists(self.table_name, loan.id):
            raise ConflictError(f"Loan {loan.id} already exists", {"loan_id": loan.id})
        self.storage.save(self.table_name, loan.id, loan.to_dict())
        return loan

    def update(self, loan: Loan) -> Loan:
        self.storage.save(self.table_name, loan.id, loan.to_dict())
        return loan

    def update_if_status(self, loan: Loan, expected_status: LoanStatus) -> bool:
        """Write the loan only if the stored copy still has `expected_status`"""
        return self.storage.save_if_match(
            self.table_name, loan.id, loan.to_dict(), {"status": expected_status.value}
        )

    def delete(self, loan_id: str) -> bool:
        return self.storage.delete(self.table_name, loan_id)

    @staticmethod
    def _sorted(records: List[Dict[str, Any]]) -> List[Loan]:
        loans = [Loan.from_dict(data) for data in records]
        loans.sort(key=lambda loan: loan.request_date, reverse=True)
        return loans
