from sqlalchemy import Column, Integer, DateTime, Numeric, Text, ForeignKey, Enum
from sqlalchemy.orm import relationship
import enum
from lendfi.database import Base, Money
from lendfi.models.user_models import enum_values
from lendfi.utils.dates import utcnow


class LoanStatus(str, enum.Enum):
    PENDING = "pending"
    # Never produced by funding, which goes straight to ACTIVE; admins may still set it
    FUNDED = "funded"
    ACTIVE = "active"
    REPAID = "repaid"
    DEFAULTED = "defaulted"


class Loan(Base):
    __tablename__ = "loans"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    lender_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    amount = Column(Money, nullable=False)
    interest_rate = Column(Numeric(7, 4), nullable=False)
    duration = Column(Integer, nullable=False)
    collateral = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    status = Column(
        Enum(LoanStatus, name="loan_status", values_callable=enum_values),
        nullable=False,
        default=LoanStatus.PENDING,
        index=True,
    )
    monthly_payment = Column(Money, nullable=False, default=0)
    total_repaid = Column(Money, nullable=False, default=0)
    remaining_balance = Column(Money, nullable=False, default=0)
    next_payment_date = Column(DateTime, nullable=True)
    funded_at = Column(DateTime, nullable=True)
    due_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    borrower = relationship("User", foreign_keys=[user_id], back_populates="borrowed_loans")
    lender = relationship("User", foreign_keys=[lender_id], back_populates="lent_loans")

    @property
    def total_amount(self):
        """Principal plus flat interest: what the borrower owes in total."""
        return self.total_repaid + self.remaining_balance

    def __repr__(self):
        return f"<Loan id={self.id} borrower={self.user_id} status={self.status} amount={self.amount}>"
