from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from lendfi.database import get_db
from lendfi.models.loan_models import LoanStatus
from lendfi.models.user_models import User
from lendfi.schemas import LoanListType, LoanPayment, LoanRequest, LoanResponse, dump, dump_many
from lendfi.services.auth import get_current_user, require_kyc
from lendfi.services.loan_service import LoanService
from lendfi.utils.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from lendfi.utils.responses import success_response

router = APIRouter(prefix="/loans", tags=["loans"])


@router.post("/request", status_code=status.HTTP_201_CREATED)
def request_loan(
    payload: LoanRequest,
    current_user: User = Depends(require_kyc),
    db: Session = Depends(get_db),
):
    loan = LoanService(db).request_loan(current_user, payload)
    return success_response({"loan": dump(LoanResponse, loan)}, message="Loan request created successfully")


@router.get("")
def list_loans(
    list_type: LoanListType = Query("all", alias="type"),
    status_filter: Optional[LoanStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Borrowed, lent, marketplace (others' pending requests) or all of mine."""
    loans, pagination = LoanService(db).list_loans(current_user, list_type, status_filter, page, limit)
    return success_response({"loans": dump_many(LoanResponse, loans), "pagination": pagination})


@router.get("/{loan_id}")
def get_loan(
    loan_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    loan = LoanService(db).get_loan(current_user, loan_id)
    return success_response({"loan": dump(LoanResponse, loan)})


@router.post("/{loan_id}/fund")
def fund_loan(
    loan_id: int,
    current_user: User = Depends(require_kyc),
    db: Session = Depends(get_db),
):
    loan = LoanService(db).fund_loan(current_user, loan_id)
    return success_response({"loan": dump(LoanResponse, loan)}, message="Loan funded successfully")


@router.post("/{loan_id}/payment")
def make_payment(
    loan_id: int,
    payload: LoanPayment,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    loan = LoanService(db).make_payment(current_user, loan_id, payload.amount)
    return success_response({"loan": dump(LoanResponse, loan)}, message="Payment processed successfully")
