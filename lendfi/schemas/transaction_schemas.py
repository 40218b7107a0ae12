from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import Field, field_validator, model_validator

from lendfi.models.transaction_models import (
    ReferenceType,
    TransactionStatus,
    TransactionSubType,
    TransactionType,
)
from lendfi.schemas.common import MAX_AMOUNT, ApiModel, quantize_amount


class TransactionCreate(ApiModel):
    type: TransactionType
    sub_type: TransactionSubType
    amount: Decimal = Field(gt=0, le=MAX_AMOUNT)
    description: Optional[str] = None
    reference_type: Optional[ReferenceType] = None
    reference_id: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None

    @field_validator("amount")
    @classmethod
    def quantize_money(cls, v: Decimal) -> Decimal:
        v = quantize_amount(v)
        if v <= 0:
            raise ValueError("Amount must be at least 0.00000001")
        return v

    @model_validator(mode="after")
    def validate_reference(self):
        if (self.reference_type is None) != (self.reference_id is None):
            raise ValueError("referenceType and referenceId must be given together")
        return self


class TransactionStatusUpdate(ApiModel):
    status: TransactionStatus
    tx_hash: Optional[str] = Field(default=None, max_length=128)


class TransactionResponse(ApiModel):
    id: int
    user_id: int
    type: TransactionType
    sub_type: TransactionSubType
    amount: float
    description: Optional[str] = None
    status: TransactionStatus
    reference_type: Optional[ReferenceType] = None
    reference_id: Optional[int] = None
    tx_hash: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="transaction_metadata")
    created_at: datetime
    updated_at: datetime


class TransactionSummary(ApiModel):
    total_lent: float
    total_borrowed: float
    total_repaid: float
    total_rosca_contributions: float = Field(serialization_alias="totalROSCAContributions")
    total_rosca_payouts: float = Field(serialization_alias="totalROSCAPayouts")
    net_balance: float
