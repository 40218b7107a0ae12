from datetime import date, datetime
from typing import Optional

from lendfi.models.user_models import KycStatus, UserRole
from lendfi.schemas.common import ApiModel


class UserSummary(ApiModel):
    """Counterparty view embedded in loans and groups."""
    id: int
    name: str
    email: str
    kyc_status: Optional[KycStatus] = None


class UserResponse(ApiModel):
    id: int
    email: str
    name: str
    phone: str
    date_of_birth: date
    id_number: str
    wallet_address: Optional[str] = None
    profile_picture: Optional[str] = None
    role: UserRole
    kyc_status: KycStatus
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
