from sqlalchemy import Column, Integer, String, DateTime, Date, Boolean, Enum
from sqlalchemy.orm import relationship
import enum
from lendfi.database import Base
from lendfi.utils.dates import utcnow


class UserRole(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


class KycStatus(str, enum.Enum):
    """KYC review states, only ever changed by an admin."""
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


def enum_values(enum_cls):
    return [member.value for member in enum_cls]


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    name = Column(String(100), nullable=False)
    phone = Column(String(15), nullable=False)
    date_of_birth = Column(Date, nullable=False)
    id_number = Column(String(64), unique=True, nullable=False)
    wallet_address = Column(String(128), unique=True, nullable=True)
    profile_picture = Column(String, nullable=True)
    role = Column(
        Enum(UserRole, name="user_role", values_callable=enum_values),
        nullable=False,
        default=UserRole.USER,
        index=True,
    )
    kyc_status = Column(
        Enum(KycStatus, name="kyc_status", values_callable=enum_values),
        nullable=False,
        default=KycStatus.PENDING,
        index=True,
    )
    is_active = Column(Boolean, nullable=False, default=True)
    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    borrowed_loans = relationship("Loan", back_populates="borrower", foreign_keys="Loan.user_id")
    lent_loans = relationship("Loan", back_populates="lender", foreign_keys="Loan.lender_id")
    created_roscas = relationship("Rosca", back_populates="creator")
    transactions = relationship("Transaction", back_populates="user")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_kyc_verified(self) -> bool:
        return self.kyc_status == KycStatus.VERIFIED

    def set_password(self, password: str):
        # Deferred import avoids a cycle with the auth service
        from lendfi.services.auth import get_password_hash
        self.password_hash = get_password_hash(password)

    def check_password(self, password: str) -> bool:
        from lendfi.services.auth import verify_password
        return verify_password(password, self.password_hash)

    def __repr__(self):
        return f"<User id={self.id} email={self.email} role={self.role}>"
