"""
Admin back-office: dashboard aggregates, user and KYC management, forced
loan status changes and data export. Every mutation leaves an AdminLog row.
"""
from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional, get_args

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, selectinload

from lendfi.exceptions import BadRequestError, NotFoundError
from lendfi.models.admin_models import AdminLog
from lendfi.models.loan_models import Loan, LoanStatus
from lendfi.models.rosca_models import Rosca, RoscaStatus
from lendfi.models.transaction_models import Transaction
from lendfi.models.user_models import KycStatus, User, UserRole
from lendfi.schemas.admin_schemas import ExportType
from lendfi.schemas.common import dump
from lendfi.schemas.loan_schemas import LoanResponse
from lendfi.schemas.transaction_schemas import TransactionResponse
from lendfi.schemas.user_schemas import UserResponse
from lendfi.utils.dates import to_naive_utc, utcnow
from lendfi.utils.pagination import paginate

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_SIZE = 5
USER_DETAIL_HISTORY_SIZE = 10
EXPORT_TYPES = get_args(ExportType)


def _party(user: Optional[User], prefix: str) -> dict:
    return {
        f"{prefix}Name": user.name if user else None,
        f"{prefix}Email": user.email if user else None,
    }


class AdminService:
    def __init__(self, db: Session):
        self.db = db

    # ============ DASHBOARD ============
    def get_dashboard(self) -> dict:
        stats = {
            "total_users": self.db.query(func.count(User.id)).scalar(),
            "total_loans": self.db.query(func.count(Loan.id)).scalar(),
            "total_roscas": self.db.query(func.count(Rosca.id)).scalar(),
            "total_transactions": self.db.query(func.count(Transaction.id)).scalar(),
            "active_loans": self.db.query(func.count(Loan.id)).filter(Loan.status == LoanStatus.ACTIVE).scalar(),
            "active_roscas": self.db.query(func.count(Rosca.id)).filter(Rosca.status == RoscaStatus.ACTIVE).scalar(),
            "verified_users": self.db.query(func.count(User.id)).filter(User.kyc_status == KycStatus.VERIFIED).scalar(),
            "total_loan_amount": self.db.query(func.sum(Loan.amount)).filter(
                Loan.status.in_([LoanStatus.ACTIVE, LoanStatus.REPAID])
            ).scalar() or Decimal("0"),
            "total_rosca_amount": self.db.query(func.sum(Rosca.contribution_amount)).scalar() or Decimal("0"),
        }

        recent_users = self.db.query(User).order_by(User.created_at.desc(), User.id.desc()).limit(RECENT_ACTIVITY_SIZE).all()
        recent_loans = (
            self.db.query(Loan)
            .options(selectinload(Loan.borrower))
            .order_by(Loan.created_at.desc(), Loan.id.desc())
            .limit(RECENT_ACTIVITY_SIZE)
            .all()
        )
        return {"stats": stats, "recent_users": recent_users, "recent_loans": recent_loans}

    # ============ USERS ============
    def list_users(
        self,
        search: Optional[str] = None,
        kyc_status: Optional[KycStatus] = None,
        role: Optional[UserRole] = None,
        page: int = 1,
        limit: int = 10,
    ):
        query = self.db.query(User)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
        if kyc_status is not None:
            query = query.filter(User.kyc_status == kyc_status)
        if role is not None:
            query = query.filter(User.role == role)

        query = query.order_by(User.created_at.desc(), User.id.desc())
        return paginate(query, page, limit)

    def _get_user(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found")
        return user

    def get_user_detail(self, user_id: int) -> dict:
        user = self._get_user(user_id)
        loans = (
            self.db.query(Loan)
            .filter(or_(Loan.user_id == user_id, Loan.lender_id == user_id))
            .order_by(Loan.created_at.desc(), Loan.id.desc())
            .limit(USER_DETAIL_HISTORY_SIZE)
            .all()
        )
        transactions = (
            self.db.query(Transaction)
            .filter(Transaction.user_id == user_id)
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
            .limit(USER_DETAIL_HISTORY_SIZE)
            .all()
        )
        return {"user": user, "loans": loans, "transactions": transactions}

    def update_kyc_status(self, admin: User, user_id: int, kyc_status: KycStatus, reason: Optional[str] = None) -> User:
        user = self._get_user(user_id)
        previous = user.kyc_status
        user.kyc_status = KycStatus(kyc_status)
        self._log(admin, "update_kyc_status", "user", user_id, {
            "from": previous.value,
            "to": user.kyc_status.value,
            "reason": reason,
        })
        self.db.commit()
        self.db.refresh(user)

        logger.info(f"Admin {admin.id} set KYC of user {user_id}: {previous.value} -> {user.kyc_status.value}")
        return user

    def deactivate_user(self, admin: User, user_id: int, reason: Optional[str] = None) -> User:
        user = self._get_user(user_id)
        user.is_active = False
        self._log(admin, "deactivate_user", "user", user_id, {"reason": reason})
        self.db.commit()
        self.db.refresh(user)

        logger.info(f"Admin {admin.id} deactivated user {user_id}")
        return user

    # ============ LOANS ============
    def update_loan_status(self, admin: User, loan_id: int, status: LoanStatus, reason: Optional[str] = None) -> Loan:
        loan = self.db.query(Loan).filter(Loan.id == loan_id).first()
        if not loan:
            raise NotFoundError("Loan not found")

        previous = loan.status
        loan.status = LoanStatus(status)
        self._log(admin, "update_loan_status", "loan", loan_id, {
            "from": previous.value,
            "to": loan.status.value,
            "reason": reason,
        })
        self.db.commit()
        self.db.refresh(loan)

        logger.info(f"Admin {admin.id} forced loan {loan_id}: {previous.value} -> {loan.status.value}")
        return loan

    # ============ EXPORT ============
    def export_records(
        self,
        admin: User,
        export_type: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> tuple[list[dict], str]:
        """Flat records for CSV or client-side PDF, plus a dated base filename."""
        if export_type not in EXPORT_TYPES:
            raise BadRequestError("Invalid export type")

        model = {"users": User, "loans": Loan, "transactions": Transaction}[export_type]
        query = self.db.query(model)
        if start_date and end_date:
            query = query.filter(model.created_at.between(to_naive_utc(start_date), to_naive_utc(end_date)))
        rows = query.order_by(model.created_at.asc(), model.id.asc()).all()

        if export_type == "users":
            records = [dump(UserResponse, user) for user in rows]
        elif export_type == "loans":
            records = []
            for loan in rows:
                record = dump(LoanResponse, loan)
                record.pop("borrower", None)
                record.pop("lender", None)
                record.update(_party(loan.borrower, "borrower"))
                record.update(_party(loan.lender, "lender"))
                records.append(record)
        else:
            records = []
            for transaction in rows:
                record = dump(TransactionResponse, transaction)
                record.update(_party(transaction.user, "user"))
                records.append(record)

        filename = f"{export_type}_export_{utcnow().date().isoformat()}"
        self._log(admin, "export_data", None, None, {
            "type": export_type,
            "count": len(records),
            "start_date": start_date.isoformat() if start_date else None,
            "end_date": end_date.isoformat() if end_date else None,
        })
        self.db.commit()

        logger.info(f"Admin {admin.id} exported {len(records)} {export_type}")
        return records, filename

    def _log(self, admin: User, action: str, target_type: Optional[str], target_id: Optional[int], details: dict):
        self.db.add(AdminLog(
            admin_id=admin.id,
            action=action,
            target_type=target_type,
            target_id=target_id,
            details=details,
        ))
