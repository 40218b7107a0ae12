from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
import enum
from lendfi.database import Base, Money
from lendfi.models.user_models import enum_values
from lendfi.utils.dates import utcnow


class RoscaStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Rosca(Base):
    __tablename__ = "roscas"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    contribution_amount = Column(Money, nullable=False)
    cycle_duration = Column(Integer, nullable=False)  # days
    max_members = Column(Integer, nullable=False)
    current_members = Column(Integer, nullable=False, default=1)
    is_on_chain = Column(Boolean, nullable=False, default=False)
    status = Column(
        Enum(RoscaStatus, name="rosca_status", values_callable=enum_values),
        nullable=False,
        default=RoscaStatus.ACTIVE,
        index=True,
    )
    current_cycle = Column(Integer, nullable=False, default=1)
    next_payout_date = Column(DateTime, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    invite_code = Column(String(8), unique=True, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    creator = relationship("User", back_populates="created_roscas")
    memberships = relationship(
        "RoscaMembership",
        back_populates="rosca",
        cascade="all, delete-orphan",
        order_by="RoscaMembership.position",
    )

    @property
    def is_full(self) -> bool:
        return self.current_members >= self.max_members

    def __repr__(self):
        return f"<Rosca id={self.id} name={self.name} members={self.current_members}/{self.max_members}>"


class RoscaMembership(Base):
    """One row per (group, member); the founder holds position 1."""
    __tablename__ = "rosca_memberships"

    id = Column(Integer, primary_key=True, index=True)
    rosca_id = Column(Integer, ForeignKey("roscas.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    last_contributed_cycle = Column(Integer, nullable=True)
    joined_at = Column(DateTime, nullable=False, default=utcnow)

    rosca = relationship("Rosca", back_populates="memberships")
    user = relationship("User")

    __table_args__ = (
        UniqueConstraint("rosca_id", "user_id", name="uq_rosca_membership_member"),
    )
