from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from lendfi.database import to_money
from lendfi.exceptions import NotFoundError
from lendfi.models.transaction_models import (
    ReferenceType,
    Transaction,
    TransactionStatus,
    TransactionSubType,
    TransactionType,
)
from lendfi.models.user_models import User
from lendfi.schemas.transaction_schemas import TransactionCreate, TransactionStatusUpdate
from lendfi.utils.dates import to_naive_utc
from lendfi.utils.pagination import paginate

logger = logging.getLogger(__name__)

# sub-type -> summary bucket
SUMMARY_BUCKETS = {
    TransactionSubType.FUNDED: "total_lent",
    TransactionSubType.REQUEST: "total_borrowed",
    TransactionSubType.REPAYMENT: "total_repaid",
    TransactionSubType.CONTRIBUTION: "total_rosca_contributions",
    TransactionSubType.PAYOUT: "total_rosca_payouts",
}


def summarize(transactions) -> dict:
    """Fold completed loan/ROSCA transactions into per-bucket totals and a net balance."""
    totals = {bucket: Decimal("0") for bucket in SUMMARY_BUCKETS.values()}
    for transaction in transactions:
        if transaction.status != TransactionStatus.COMPLETED:
            continue
        if transaction.type not in (TransactionType.LOAN, TransactionType.ROSCA):
            continue
        bucket = SUMMARY_BUCKETS.get(transaction.sub_type)
        if bucket:
            totals[bucket] += transaction.amount

    totals["net_balance"] = (
        totals["total_lent"]
        - totals["total_borrowed"]
        + totals["total_repaid"]
        + totals["total_rosca_payouts"]
        - totals["total_rosca_contributions"]
    )
    return totals


class TransactionService:
    """Ledger entries owned by the authenticated user."""

    def __init__(self, db: Session):
        self.db = db

    def list_transactions(
        self,
        user: User,
        tx_type: Optional[str] = None,
        status: Optional[TransactionStatus] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        page: int = 1,
        limit: int = 10,
    ):
        query = self.db.query(Transaction).filter(Transaction.user_id == user.id)

        if tx_type and tx_type != "all":
            query = query.filter(Transaction.type == TransactionType(tx_type))
        if status is not None:
            query = query.filter(Transaction.status == status)
        if start_date and end_date:
            query = query.filter(
                Transaction.created_at.between(to_naive_utc(start_date), to_naive_utc(end_date))
            )

        query = query.order_by(Transaction.created_at.desc(), Transaction.id.desc())
        return paginate(query, page, limit)

    def get_transaction(self, user: User, transaction_id: int) -> Transaction:
        transaction = self.db.query(Transaction).filter(
            Transaction.id == transaction_id,
            Transaction.user_id == user.id,
        ).first()
        if not transaction:
            raise NotFoundError("Transaction not found")
        return transaction

    def create_transaction(self, user: User, payload: TransactionCreate) -> Transaction:
        transaction = Transaction(
            user_id=user.id,
            type=TransactionType(payload.type),
            sub_type=TransactionSubType(payload.sub_type),
            amount=to_money(payload.amount),
            description=payload.description,
            reference_type=ReferenceType(payload.reference_type) if payload.reference_type else None,
            reference_id=payload.reference_id,
            transaction_metadata=payload.metadata or {},
            status=TransactionStatus.PENDING,
        )
        self.db.add(transaction)
        self.db.commit()
        self.db.refresh(transaction)
        return transaction

    def update_status(self, user: User, transaction_id: int, payload: TransactionStatusUpdate) -> Transaction:
        transaction = self.get_transaction(user, transaction_id)
        transaction.status = TransactionStatus(payload.status)
        if payload.tx_hash is not None:
            transaction.tx_hash = payload.tx_hash
        self.db.commit()
        self.db.refresh(transaction)

        logger.info(f"Transaction {transaction_id} -> {transaction.status.value}")
        return transaction

    def get_summary(self, user: User) -> dict:
        transactions = self.db.query(Transaction).filter(
            Transaction.user_id == user.id,
            Transaction.type.in_([TransactionType.LOAN, TransactionType.ROSCA]),
            Transaction.status == TransactionStatus.COMPLETED,
        ).all()
        return summarize(transactions)
