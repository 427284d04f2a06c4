"""
Loan endpoints
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from .auth import (
    LoanSimulatorSystem, get_current_user, get_system, http_error, logger, require_admin
)
from .schemas import AmortizationEntryModel, CreateLoanRequest, PaymentQuoteModel, ReviewLoanRequest
from ..applications import LoanRecord
from ..currency import format_currency
from ..errors import LoanSimulatorError
from ..loans import LoanStatus
from ..logging_config import log_action
from ..users import User


router = APIRouter()


def _load_owned_loan(system: LoanSimulatorSystem, loan_id: str, user: User) -> LoanRecord:
    try:
        loan = system.loan_service.get_loan_by_id(loan_id)
    except LoanSimulatorError as e:
        raise http_error(e)

    if not user.is_admin and loan.owner_id != user.id:
        log_action(logger, "warning", "Access to another user's loan denied",
                   user_id=user.id, action="loan_access_denied", resource=f"loan:{loan_id}")
        raise HTTPException(status_code=403, detail="Not allowed to access this loan")
    return loan


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_loan(
    request: CreateLoanRequest,
    user: User = Depends(get_current_user),
    system: LoanSimulatorSystem = Depends(get_system)
):
    """Request a new loan for the current user"""
    try:
        loan = system.loan_service.create_loan(user.id, request.to_loan_request())
    except LoanSimulatorError as e:
        log_action(logger, "warning", f"Loan request rejected: {e.message}",
                   user_id=user.id, action="create_loan_failed", resource="loan")
        raise http_error(e)

    log_action(logger, "info", f"Loan requested: {format_currency(loan.amount)} over {loan.term_in_months} months",
               user_id=user.id, action="create_loan", resource=f"loan:{loan.id}",
               extra={"monthly_payment": format_currency(loan.monthly_payment)})
    return loan.to_dict()


@router.get("/my-loans")
async def get_my_loans(
    user: User = Depends(get_current_user),
    system: LoanSimulatorSystem = Depends(get_system)
):
    """Loans requested by the current user"""
    return [loan.to_dict() for loan in system.loan_service.get_loans_for_user(user.id)]


@router.post("/calculate")
async def calculate_payment(
    request: CreateLoanRequest,
    system: LoanSimulatorSystem = Depends(get_system)
):
    """Quote the monthly payment and totals without creating a loan"""
    try:
        quote = system.loan_service.quote_payment(request.to_loan_request())
    except LoanSimulatorError as e:
        raise http_error(e)

    return PaymentQuoteModel.from_quote(quote).model_dump()


@router.post("/schedule")
async def get_payment_schedule(
    request: CreateLoanRequest,
    system: LoanSimulatorSystem = Depends(get_system)
):
    """Month-by-month amortization schedule for a prospective loan"""
    try:
        schedule = system.loan_service.schedule_for(request.to_loan_request())
    except LoanSimulatorError as e:
        raise http_error(e)

    return {"schedule": [AmortizationEntryModel.from_entry(entry).model_dump() for entry in schedule]}


@router.get("")
async def get_all_loans(
    status_filter: Optional[str] = Query(None, alias="status"),
    admin: User = Depends(require_admin),
    system: LoanSimulatorSystem = Depends(get_system)
):
    """All loans, optionally filtered by status (admin only)"""
    try:
        loan_status = LoanStatus.parse(status_filter) if status_filter else None
    except LoanSimulatorError as e:
        raise http_error(e)

    return [loan.to_dict() for loan in system.loan_service.get_all_loans(loan_status)]


@router.get("/{loan_id}")
async def get_loan(
    loan_id: str,
    user: User = Depends(get_current_user),
    system: LoanSimulatorSystem = Depends(get_system)
):
    """Get loan details (owner or admin)"""
    return _load_owned_loan(system, loan_id, user).to_dict()


@router.put("/{loan_id}/review")
async def review_loan(
    loan_id: str,
    request: ReviewLoanRequest,
    admin: User = Depends(require_admin),
    system: LoanSimulatorSystem = Depends(get_system)
):
    """Approve or reject a pending loan (admin only)"""
    try:
        loan = system.loan_service.review_loan(loan_id, request.to_status(), request.admin_comments)
    except LoanSimulatorError as e:
        log_action(logger, "warning", f"Loan review failed: {e.message}",
                   user_id=admin.id, action="review_loan_failed", resource=f"loan:{loan_id}")
        raise http_error(e)

    log_action(logger, "info", f"Loan reviewed as {loan.status_label}",
               user_id=admin.id, action="review_loan", resource=f"loan:{loan_id}")
    return loan.to_dict()


@router.delete("/{loan_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_loan(
    loan_id: str,
    user: User = Depends(get_current_user),
    system: LoanSimulatorSystem = Depends(get_system)
):
    """Delete a loan (owner or admin)"""
    _load_owned_loan(system, loan_id, user)

    try:
        system.loan_service.delete_loan(loan_id)
    except LoanSimulatorError as e:
        raise http_error(e)

    log_action(logger, "info", "Loan deleted",
               user_id=user.id, action="delete_loan", resource=f"loan:{loan_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
