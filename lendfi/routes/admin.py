from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from lendfi.database import get_db
from lendfi.models.user_models import KycStatus, User, UserRole
from lendfi.schemas import (
    AdminStats,
    DeactivateUserRequest,
    ExportFormat,
    KycStatusUpdate,
    LoanResponse,
    LoanStatusUpdate,
    TransactionResponse,
    UserResponse,
    dump,
    dump_many,
)
from lendfi.services.admin_service import AdminService
from lendfi.services.auth import require_admin
from lendfi.utils.dates import utcnow
from lendfi.utils.export import records_to_csv
from lendfi.utils.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from lendfi.utils.responses import success_response

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


# ============ DASHBOARD ============
@router.get("/dashboard")
def get_dashboard(db: Session = Depends(get_db)):
    dashboard = AdminService(db).get_dashboard()
    return success_response({
        "stats": dump(AdminStats, dashboard["stats"]),
        "recentActivity": {
            "users": dump_many(UserResponse, dashboard["recent_users"]),
            "loans": dump_many(LoanResponse, dashboard["recent_loans"]),
        },
    })


# ============ USERS ============
@router.get("/users")
def list_users(
    search: Optional[str] = Query(None, max_length=100),
    kyc_status: Optional[KycStatus] = Query(None, alias="kycStatus"),
    role: Optional[UserRole] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
):
    users, pagination = AdminService(db).list_users(search, kyc_status, role, page, limit)
    return success_response({"users": dump_many(UserResponse, users), "pagination": pagination})


@router.get("/users/{user_id}")
def get_user_detail(user_id: int, db: Session = Depends(get_db)):
    detail = AdminService(db).get_user_detail(user_id)
    return success_response({
        "user": dump(UserResponse, detail["user"]),
        "loans": dump_many(LoanResponse, detail["loans"]),
        "transactions": dump_many(TransactionResponse, detail["transactions"]),
    })


@router.put("/users/{user_id}/kyc")
def update_kyc_status(
    user_id: int,
    payload: KycStatusUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = AdminService(db).update_kyc_status(admin, user_id, payload.kyc_status, payload.reason)
    return success_response({"user": dump(UserResponse, user)}, message="KYC status updated successfully")


@router.put("/users/{user_id}/deactivate")
def deactivate_user(
    user_id: int,
    payload: Optional[DeactivateUserRequest] = None,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    reason = payload.reason if payload else None
    user = AdminService(db).deactivate_user(admin, user_id, reason)
    return success_response({"user": dump(UserResponse, user)}, message="User deactivated successfully")


# ============ LOANS ============
@router.put("/loans/{loan_id}/status")
def update_loan_status(
    loan_id: int,
    payload: LoanStatusUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Force a loan into any status. No transition checks apply here."""
    loan = AdminService(db).update_loan_status(admin, loan_id, payload.status, payload.reason)
    return success_response({"loan": dump(LoanResponse, loan)}, message="Loan status updated successfully")


# ============ EXPORT ============
@router.get("/export")
def export_data(
    export_type: str = Query(..., alias="type"),
    export_format: ExportFormat = Query("csv", alias="format"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    records, filename = AdminService(db).export_records(admin, export_type, start_date, end_date)

    if export_format == "csv":
        return Response(
            content=records_to_csv(records),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}.csv"'},
        )

    return success_response({
        "records": records,
        "filename": filename,
        "type": export_type,
        "exportDate": utcnow().isoformat(),
    })
