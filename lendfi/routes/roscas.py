from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from lendfi.database import get_db
from lendfi.models.user_models import User
from lendfi.schemas import (
    RoscaContribution,
    RoscaCreate,
    RoscaDetailResponse,
    RoscaListType,
    RoscaResponse,
    TransactionResponse,
    dump,
    dump_many,
)
from lendfi.services.auth import get_current_user, require_kyc
from lendfi.services.rosca_service import RoscaService, build_invite_link
from lendfi.utils.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from lendfi.utils.responses import success_response

router = APIRouter(prefix="/roscas", tags=["roscas"])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_rosca(
    payload: RoscaCreate,
    current_user: User = Depends(require_kyc),
    db: Session = Depends(get_db),
):
    rosca = RoscaService(db).create_rosca(current_user, payload)
    return success_response(
        {
            "rosca": dump(RoscaDetailResponse, rosca),
            "inviteLink": build_invite_link(rosca.invite_code),
        },
        message="ROSCA created successfully",
    )


@router.get("")
def list_roscas(
    list_type: RoscaListType = Query("available", alias="type"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    roscas, pagination = RoscaService(db).list_roscas(current_user, list_type, page, limit)
    return success_response({"roscas": dump_many(RoscaResponse, roscas), "pagination": pagination})


@router.post("/join/{invite_code}")
def join_rosca_by_invite(
    invite_code: str,
    current_user: User = Depends(require_kyc),
    db: Session = Depends(get_db),
):
    rosca = RoscaService(db).join_by_invite(current_user, invite_code)
    return success_response({"rosca": dump(RoscaDetailResponse, rosca)}, message="Successfully joined ROSCA")


@router.get("/{rosca_id}")
def get_rosca(
    rosca_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    rosca = RoscaService(db).get_rosca(rosca_id)
    return success_response({"rosca": dump(RoscaDetailResponse, rosca)})


@router.post("/{rosca_id}/join")
def join_rosca(
    rosca_id: int,
    current_user: User = Depends(require_kyc),
    db: Session = Depends(get_db),
):
    rosca = RoscaService(db).join_by_id(current_user, rosca_id)
    return success_response({"rosca": dump(RoscaDetailResponse, rosca)}, message="Successfully joined ROSCA")


@router.post("/{rosca_id}/contribute")
def contribute(
    rosca_id: int,
    payload: RoscaContribution,
    current_user: User = Depends(require_kyc),
    db: Session = Depends(get_db),
):
    rosca, transaction = RoscaService(db).contribute(current_user, rosca_id, payload.amount)
    return success_response(
        {
            "rosca": dump(RoscaDetailResponse, rosca),
            "transaction": dump(TransactionResponse, transaction),
        },
        message="Contribution successful",
    )
