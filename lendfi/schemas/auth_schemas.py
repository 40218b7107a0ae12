import re
from datetime import date
from typing import Optional

from pydantic import EmailStr, Field, field_validator, model_validator

from lendfi.models.user_models import UserRole
from lendfi.schemas.common import ApiModel

PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*[0-9])(?=.*[!@#$%^&*])")


def check_password_strength(value: str) -> str:
    if len(value) < 8:
        raise ValueError("Password must be at least 8 characters long")
    if not PASSWORD_PATTERN.match(value):
        raise ValueError(
            "Password must contain at least one lowercase letter, one uppercase letter, "
            "one number, and one special character"
        )
    return value


class UserRegister(ApiModel):
    email: EmailStr
    password: str
    name: str = Field(min_length=2, max_length=100)
    phone: str = Field(min_length=10, max_length=15)
    date_of_birth: date
    id_number: str = Field(min_length=1, max_length=64)
    wallet_address: Optional[str] = Field(default=None, max_length=128)
    role: UserRole = UserRole.USER
    admin_secret: Optional[str] = None

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        return check_password_strength(v)

    @field_validator("date_of_birth")
    @classmethod
    def validate_date_of_birth(cls, v):
        if v > date.today():
            raise ValueError("Date of birth cannot be in the future")
        return v

    @model_validator(mode="after")
    def validate_admin_secret(self):
        if self.role == UserRole.ADMIN and not self.admin_secret:
            raise ValueError("adminSecret is required for admin registration")
        if self.role != UserRole.ADMIN and self.admin_secret is not None:
            raise ValueError("adminSecret is not allowed")
        return self


class UserLogin(ApiModel):
    email: EmailStr
    password: str = Field(min_length=1)


class ProfileUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    phone: Optional[str] = Field(default=None, min_length=10, max_length=15)
    wallet_address: Optional[str] = Field(default=None, max_length=128)
    profile_picture: Optional[str] = None


class PasswordChange(ApiModel):
    current_password: str = Field(min_length=1)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v):
        return check_password_strength(v)
