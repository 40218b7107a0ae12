from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import Field, field_validator

from lendfi.models.rosca_models import RoscaStatus
from lendfi.schemas.common import MAX_AMOUNT, ApiModel, quantize_amount
from lendfi.schemas.user_schemas import UserSummary

RoscaListType = Literal["available", "my-roscas"]


class RoscaCreate(ApiModel):
    name: str = Field(min_length=3, max_length=100)
    description: str = Field(min_length=1)
    contribution_amount: Decimal = Field(ge=Decimal("0.001"), le=MAX_AMOUNT)
    cycle_duration: int = Field(ge=1, le=365, description="Cycle length in days")
    max_members: int = Field(ge=2, le=50)
    is_on_chain: bool = False

    @field_validator("contribution_amount")
    @classmethod
    def quantize_money(cls, v: Decimal) -> Decimal:
        return quantize_amount(v)


class RoscaContribution(ApiModel):
    # Compared exactly against the group amount once on the money grid
    amount: Decimal = Field(le=MAX_AMOUNT)

    @field_validator("amount")
    @classmethod
    def quantize_money(cls, v: Decimal) -> Decimal:
        return quantize_amount(v)


class RoscaMemberResponse(ApiModel):
    user_id: int
    position: int
    last_contributed_cycle: Optional[int] = None
    joined_at: datetime


class RoscaResponse(ApiModel):
    id: int
    name: str
    description: str
    contribution_amount: float
    cycle_duration: int
    max_members: int
    current_members: int
    is_full: bool
    is_on_chain: bool
    status: RoscaStatus
    current_cycle: int
    next_payout_date: datetime
    created_by: int
    invite_code: str
    created_at: datetime
    updated_at: datetime
    creator: Optional[UserSummary] = None


class RoscaDetailResponse(RoscaResponse):
    memberships: List[RoscaMemberResponse] = Field(default_factory=list, serialization_alias="members")
