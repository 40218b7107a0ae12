"""
Loan lifecycle: request, marketplace listing, funding and repayment.

State transitions are written as conditional UPDATEs whose WHERE clause
repeats the guard (status, balance), and the affected row count decides
whether the transition happened. Two funders racing on one pending loan
therefore end with exactly one lender.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy import or_, update
from sqlalchemy.orm import Session, selectinload

from lendfi.database import to_money
from lendfi.exceptions import BadRequestError, NotFoundError
from lendfi.models.loan_models import Loan, LoanStatus
from lendfi.models.transaction_models import (
    ReferenceType,
    Transaction,
    TransactionStatus,
    TransactionSubType,
    TransactionType,
)
from lendfi.models.user_models import User
from lendfi.schemas.loan_schemas import LoanRequest
from lendfi.utils.dates import add_months, utcnow
from lendfi.utils.pagination import paginate

logger = logging.getLogger(__name__)

HUNDRED = Decimal(100)


def compute_repayment_terms(amount: Decimal, interest_rate: Decimal, duration: int) -> tuple[Decimal, Decimal]:
    """Flat simple interest over the whole term.

    Returns ``(total_amount, monthly_payment)`` on the money grid.
    """
    amount = Decimal(amount)
    interest_rate = Decimal(interest_rate)
    total_amount = to_money(amount * (1 + interest_rate / HUNDRED))
    monthly_payment = to_money(total_amount / duration)
    return total_amount, monthly_payment


class LoanService:
    def __init__(self, db: Session):
        self.db = db

    def _base_query(self):
        return self.db.query(Loan).options(
            selectinload(Loan.borrower),
            selectinload(Loan.lender),
        )

    def request_loan(self, borrower: User, payload: LoanRequest) -> Loan:
        amount = to_money(payload.amount)
        total_amount, monthly_payment = compute_repayment_terms(
            amount, payload.interest_rate, payload.duration
        )

        loan = Loan(
            user_id=borrower.id,
            amount=amount,
            interest_rate=payload.interest_rate,
            duration=payload.duration,
            collateral=payload.collateral,
            description=payload.description,
            status=LoanStatus.PENDING,
            monthly_payment=monthly_payment,
            total_repaid=Decimal("0"),
            remaining_balance=total_amount,
        )
        self.db.add(loan)
        self.db.flush()

        self.db.add(Transaction(
            user_id=borrower.id,
            type=TransactionType.LOAN,
            sub_type=TransactionSubType.REQUEST,
            amount=amount,
            description=f"Loan request: {payload.description}",
            status=TransactionStatus.COMPLETED,
            reference_type=ReferenceType.LOAN,
            reference_id=loan.id,
        ))
        self.db.commit()
        self.db.refresh(loan)

        logger.info(f"Loan requested: id={loan.id} borrower={borrower.id} amount={amount} total={total_amount}")
        return loan

    def list_loans(
        self,
        user: User,
        list_type: str = "all",
        status: Optional[LoanStatus] = None,
        page: int = 1,
        limit: int = 10,
    ):
        query = self._base_query()

        if list_type == "borrowed":
            query = query.filter(Loan.user_id == user.id)
        elif list_type == "lent":
            query = query.filter(Loan.lender_id == user.id)
        elif list_type == "marketplace":
            query = query.filter(Loan.status == LoanStatus.PENDING, Loan.user_id != user.id)
        else:
            query = query.filter(or_(Loan.user_id == user.id, Loan.lender_id == user.id))

        if status is not None:
            query = query.filter(Loan.status == status)

        query = query.order_by(Loan.created_at.desc(), Loan.id.desc())
        return paginate(query, page, limit)

    def get_loan(self, user: User, loan_id: int) -> Loan:
        """Visible to its borrower and lender, and to everyone while it sits on the marketplace."""
        loan = self._base_query().filter(
            Loan.id == loan_id,
            or_(
                Loan.user_id == user.id,
                Loan.lender_id == user.id,
                Loan.status == LoanStatus.PENDING,
            ),
        ).first()
        if not loan:
            raise NotFoundError("Loan not found")
        return loan

    def fund_loan(self, lender: User, loan_id: int) -> Loan:
        loan = self.db.query(Loan).filter(Loan.id == loan_id).first()
        if not loan:
            raise NotFoundError("Loan not found or already funded")

        if loan.user_id == lender.id:
            logger.warning(f"Self-funding rejected: loan={loan_id} user={lender.id}")
            raise BadRequestError("Cannot fund your own loan")

        if loan.status != LoanStatus.PENDING:
            raise NotFoundError("Loan not found or already funded")

        now = utcnow()
        result = self.db.execute(
            update(Loan)
            .where(
                Loan.id == loan_id,
                Loan.status == LoanStatus.PENDING,
                Loan.user_id != lender.id,
            )
            .values(
                lender_id=lender.id,
                status=LoanStatus.ACTIVE,
                funded_at=now,
                due_date=add_months(now, loan.duration),
                next_payment_date=add_months(now, 1),
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            logger.warning(f"Loan {loan_id} was funded concurrently, lender {lender.id} lost the race")
            raise NotFoundError("Loan not found or already funded")

        self.db.add(Transaction(
            user_id=lender.id,
            type=TransactionType.LOAN,
            sub_type=TransactionSubType.FUNDED,
            amount=loan.amount,
            description=f"Funded loan for {loan.description}",
            status=TransactionStatus.COMPLETED,
            reference_type=ReferenceType.LOAN,
            reference_id=loan.id,
        ))
        self.db.commit()

        logger.info(f"Loan funded: id={loan_id} lender={lender.id}")
        return self._base_query().filter(Loan.id == loan_id).one()

    def make_payment(self, borrower: User, loan_id: int, amount) -> Loan:
        loan = self.db.query(Loan).filter(
            Loan.id == loan_id,
            Loan.user_id == borrower.id,
            Loan.status == LoanStatus.ACTIVE,
        ).first()
        if not loan:
            raise NotFoundError("Loan not found or not active")

        amount = to_money(amount)
        if amount <= 0 or amount > loan.remaining_balance:
            raise BadRequestError("Invalid payment amount")

        now = utcnow()
        result = self.db.execute(
            update(Loan)
            .where(
                Loan.id == loan_id,
                Loan.user_id == borrower.id,
                Loan.status == LoanStatus.ACTIVE,
                Loan.remaining_balance >= amount,
            )
            .values(
                remaining_balance=Loan.remaining_balance - amount,
                total_repaid=Loan.total_repaid + amount,
                next_payment_date=add_months(now, 1),
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            # A concurrent payment shrank the balance below this amount
            self.db.rollback()
            raise BadRequestError("Invalid payment amount")

        settled = self.db.execute(
            update(Loan)
            .where(
                Loan.id == loan_id,
                Loan.status == LoanStatus.ACTIVE,
                Loan.remaining_balance == 0,
            )
            .values(status=LoanStatus.REPAID, next_payment_date=None)
            .execution_options(synchronize_session=False)
        ).rowcount == 1

        self.db.add(Transaction(
            user_id=borrower.id,
            type=TransactionType.LOAN,
            sub_type=TransactionSubType.REPAYMENT,
            amount=amount,
            description=f"Loan repayment for {loan.description}",
            status=TransactionStatus.COMPLETED,
            reference_type=ReferenceType.LOAN,
            reference_id=loan.id,
        ))
        self.db.commit()

        if settled:
            logger.info(f"Loan repaid in full: id={loan_id}")
        else:
            logger.info(f"Loan payment: id={loan_id} amount={amount}")
        return self._base_query().filter(Loan.id == loan_id).one()
