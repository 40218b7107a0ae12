from typing import Literal, Optional

from pydantic import Field

from lendfi.models.loan_models import LoanStatus
from lendfi.models.user_models import KycStatus
from lendfi.schemas.common import ApiModel

ExportType = Literal["users", "loans", "transactions"]
ExportFormat = Literal["csv", "json"]


class AdminStats(ApiModel):
    """Platform-wide counters for the admin dashboard."""
    total_users: int
    total_loans: int
    total_roscas: int = Field(serialization_alias="totalROSCAs")
    total_transactions: int
    active_loans: int
    active_roscas: int = Field(serialization_alias="activeROSCAs")
    verified_users: int
    total_loan_amount: float
    total_rosca_amount: float = Field(serialization_alias="totalROSCAAmount")


class KycStatusUpdate(ApiModel):
    kyc_status: KycStatus
    reason: Optional[str] = Field(default=None, max_length=500)


class LoanStatusUpdate(ApiModel):
    status: LoanStatus
    reason: Optional[str] = Field(default=None, max_length=500)


class DeactivateUserRequest(ApiModel):
    reason: Optional[str] = Field(default=None, max_length=500)
