from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from lendfi.database import get_db
from lendfi.models.transaction_models import TransactionStatus
from lendfi.models.user_models import User
from lendfi.schemas import (
    TransactionCreate,
    TransactionResponse,
    TransactionStatusUpdate,
    TransactionSummary,
    dump,
    dump_many,
)
from lendfi.services.auth import get_current_user
from lendfi.services.transaction_service import TransactionService
from lendfi.utils.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from lendfi.utils.responses import success_response

router = APIRouter(prefix="/transactions", tags=["transactions"])

TransactionTypeFilter = Literal["all", "loan", "rosca", "deposit", "withdrawal"]


@router.get("")
def list_transactions(
    tx_type: Optional[TransactionTypeFilter] = Query(None, alias="type"),
    status_filter: Optional[TransactionStatus] = Query(None, alias="status"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    transactions, pagination = TransactionService(db).list_transactions(
        current_user,
        tx_type=tx_type,
        status=status_filter,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )
    return success_response({
        "transactions": dump_many(TransactionResponse, transactions),
        "pagination": pagination,
    })


@router.get("/summary")
def get_summary(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Completed loan and ROSCA totals, recomputed on every call."""
    totals = TransactionService(db).get_summary(current_user)
    return success_response({"summary": dump(TransactionSummary, totals)})


@router.get("/{transaction_id}")
def get_transaction(
    transaction_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    transaction = TransactionService(db).get_transaction(current_user, transaction_id)
    return success_response({"transaction": dump(TransactionResponse, transaction)})


@router.post("", status_code=status.HTTP_201_CREATED)
def create_transaction(
    payload: TransactionCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    transaction = TransactionService(db).create_transaction(current_user, payload)
    return success_response(
        {"transaction": dump(TransactionResponse, transaction)},
        message="Transaction created successfully",
    )


@router.put("/{transaction_id}/status")
def update_transaction_status(
    transaction_id: int,
    payload: TransactionStatusUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    transaction = TransactionService(db).update_status(current_user, transaction_id, payload)
    return success_response(
        {"transaction": dump(TransactionResponse, transaction)},
        message="Transaction updated successfully",
    )
