from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from lendfi.config import settings
from lendfi.database import get_db
from lendfi.middleware.security import limiter
from lendfi.models.user_models import User
from lendfi.schemas import PasswordChange, ProfileUpdate, UserLogin, UserRegister, UserResponse, dump
from lendfi.services.auth import get_current_user
from lendfi.services.user_service import UserService
from lendfi.utils.responses import success_response

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.AUTH_RATE_LIMIT)
def register(request: Request, payload: UserRegister, db: Session = Depends(get_db)):
    user, token = UserService(db).register(payload)
    return success_response(
        {"user": dump(UserResponse, user), "token": token},
        message="User registered successfully",
    )


@router.post("/login")
@limiter.limit(settings.AUTH_RATE_LIMIT)
def login(request: Request, payload: UserLogin, db: Session = Depends(get_db)):
    """Exchange email/password for a bearer token."""
    user, token = UserService(db).login(payload.email, payload.password)
    return success_response(
        {"user": dump(UserResponse, user), "token": token},
        message="Login successful",
    )


@router.get("/profile")
def get_profile(current_user: User = Depends(get_current_user)):
    return success_response({"user": dump(UserResponse, current_user)})


@router.put("/profile")
def update_profile(
    payload: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = UserService(db).update_profile(current_user, payload)
    return success_response({"user": dump(UserResponse, user)}, message="Profile updated successfully")


@router.put("/change-password")
def change_password(
    payload: PasswordChange,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    UserService(db).change_password(current_user, payload)
    return success_response(message="Password changed successfully")
