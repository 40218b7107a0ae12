from sqlalchemy import Column, Integer, String, DateTime, Text, JSON, ForeignKey, Enum
from sqlalchemy.orm import relationship
import enum
from lendfi.database import Base, Money
from lendfi.models.user_models import enum_values
from lendfi.utils.dates import utcnow


class TransactionType(str, enum.Enum):
    LOAN = "loan"
    ROSCA = "rosca"
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"


class TransactionSubType(str, enum.Enum):
    REQUEST = "request"
    FUNDED = "funded"
    REPAYMENT = "repayment"
    CONTRIBUTION = "contribution"
    PAYOUT = "payout"
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ReferenceType(str, enum.Enum):
    """What reference_id points at. Advisory only: no foreign key backs it."""
    LOAN = "loan"
    ROSCA = "rosca"


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(
        Enum(TransactionType, name="transaction_type", values_callable=enum_values),
        nullable=False,
        index=True,
    )
    sub_type = Column(
        Enum(TransactionSubType, name="transaction_sub_type", values_callable=enum_values),
        nullable=False,
    )
    amount = Column(Money, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(
        Enum(TransactionStatus, name="transaction_status", values_callable=enum_values),
        nullable=False,
        default=TransactionStatus.PENDING,
        index=True,
    )
    reference_type = Column(
        Enum(ReferenceType, name="transaction_reference_type", values_callable=enum_values),
        nullable=True,
    )
    reference_id = Column(Integer, nullable=True, index=True)
    tx_hash = Column(String(128), nullable=True)
    # "metadata" is reserved on declarative classes
    transaction_metadata = Column("metadata", JSON, nullable=True, default=dict)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="transactions")

    def __repr__(self):
        return f"<Transaction id={self.id} {self.type}/{self.sub_type} amount={self.amount} status={self.status}>"
