import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lendfi.config import settings
from lendfi.exceptions import BadRequestError, ForbiddenError, UnauthorizedError
from lendfi.models.user_models import KycStatus, User, UserRole
from lendfi.schemas.auth_schemas import PasswordChange, ProfileUpdate, UserRegister
from lendfi.services.auth import create_user_token, get_password_hash, verify_password
from lendfi.utils.dates import utcnow

logger = logging.getLogger(__name__)


class UserService:
    """Account lifecycle: registration, login, profile and password."""

    def __init__(self, db: Session):
        self.db = db

    def register(self, payload: UserRegister) -> tuple[User, str]:
        role = UserRole(payload.role)
        if role == UserRole.ADMIN:
            expected = settings.ADMIN_REGISTRATION_SECRET
            if not expected or payload.admin_secret != expected:
                logger.warning(f"Rejected admin registration for {payload.email}")
                raise ForbiddenError("Invalid admin secret")

        email = payload.email.lower()
        self._ensure_unique(email=email, id_number=payload.id_number, wallet_address=payload.wallet_address)

        user = User(
            email=email,
            password_hash=get_password_hash(payload.password),
            name=payload.name.strip(),
            phone=payload.phone.strip(),
            date_of_birth=payload.date_of_birth,
            id_number=payload.id_number.strip(),
            wallet_address=payload.wallet_address,
            role=role,
            kyc_status=KycStatus.PENDING,
            is_active=True,
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race against a concurrent registration with the same identifiers
            self.db.rollback()
            raise BadRequestError("User with this email, ID number or wallet address already exists")
        self.db.refresh(user)

        logger.info(f"User registered: id={user.id} role={user.role.value}")
        return user, create_user_token(user)

    def login(self, email: str, password: str) -> tuple[User, str]:
        user = self.db.query(User).filter(User.email == email.lower()).first()
        if not user or not user.check_password(password):
            logger.warning(f"Failed login for {email}")
            raise UnauthorizedError("Invalid email or password")

        if not user.is_active:
            raise UnauthorizedError("Account is deactivated")

        user.last_login = utcnow()
        self.db.commit()
        self.db.refresh(user)
        return user, create_user_token(user)

    def update_profile(self, user: User, payload: ProfileUpdate) -> User:
        changes = payload.model_dump(exclude_unset=True)
        wallet_address = changes.get("wallet_address")
        if wallet_address and wallet_address != user.wallet_address:
            self._ensure_unique(wallet_address=wallet_address)

        for field, value in changes.items():
            if field in ("name", "phone") and value is None:
                continue
            setattr(user, field, value.strip() if isinstance(value, str) else value)

        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise BadRequestError("Wallet address already in use")
        self.db.refresh(user)
        return user

    def change_password(self, user: User, payload: PasswordChange) -> None:
        if not verify_password(payload.current_password, user.password_hash):
            raise BadRequestError("Current password is incorrect")

        user.password_hash = get_password_hash(payload.new_password)
        self.db.commit()
        logger.info(f"Password changed for user id={user.id}")

    def _ensure_unique(
        self,
        email: Optional[str] = None,
        id_number: Optional[str] = None,
        wallet_address: Optional[str] = None,
    ) -> None:
        if email and self.db.query(User).filter(User.email == email).first():
            raise BadRequestError("User with this email already exists")
        if id_number and self.db.query(User).filter(User.id_number == id_number).first():
            raise BadRequestError("User with this ID number already exists")
        if wallet_address and self.db.query(User).filter(User.wallet_address == wallet_address).first():
            raise BadRequestError("Wallet address already in use")
