from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Literal, Optional

from pydantic import Field, field_validator

from lendfi.models.loan_models import LoanStatus
from lendfi.schemas.common import MAX_AMOUNT, ApiModel, quantize_amount
from lendfi.schemas.user_schemas import UserSummary

LoanListType = Literal["all", "borrowed", "lent", "marketplace"]

RATE_QUANTUM = Decimal("0.0001")


class LoanRequest(ApiModel):
    amount: Decimal = Field(ge=Decimal("0.001"), le=MAX_AMOUNT)
    interest_rate: Decimal = Field(ge=0, le=100)
    duration: int = Field(ge=1, le=60, description="Term in months")
    collateral: str = Field(min_length=1)
    description: str = Field(min_length=1)

    @field_validator("amount")
    @classmethod
    def quantize_money(cls, v: Decimal) -> Decimal:
        return quantize_amount(v)

    @field_validator("interest_rate")
    @classmethod
    def quantize_rate(cls, v: Decimal) -> Decimal:
        return v.quantize(RATE_QUANTUM, rounding=ROUND_HALF_UP)


class LoanPayment(ApiModel):
    # Range is checked against the outstanding balance by the service
    amount: Decimal = Field(le=MAX_AMOUNT)

    @field_validator("amount")
    @classmethod
    def quantize_money(cls, v: Decimal) -> Decimal:
        return quantize_amount(v)


class LoanResponse(ApiModel):
    id: int
    user_id: int
    lender_id: Optional[int] = None
    amount: float
    interest_rate: float
    duration: int
    collateral: str
    description: str
    status: LoanStatus
    monthly_payment: float
    total_amount: float
    total_repaid: float
    remaining_balance: float
    next_payment_date: Optional[datetime] = None
    funded_at: Optional[datetime] = None
    due_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    borrower: Optional[UserSummary] = None
    lender: Optional[UserSummary] = None
