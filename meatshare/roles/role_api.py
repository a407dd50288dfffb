# meatshare/roles/role_api.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from meatshare.auth.session import AuthSession, get_auth_session
from meatshare.db.core import get_db
from meatshare.domain.types import AppRole, FarmerRequestStatus
from meatshare.roles.dtos import (
    FarmerRoleRequestCreate,
    FarmerRoleRequestDTO,
    FarmerRoleRequestListResponse,
    FarmerRoleRequestReview,
    HasRoleResponse,
    MyFarmerRoleRequestResponse,
    ProfileDTO,
    ProfileUpdate,
)
from meatshare.roles.role_service import (
    AlreadyFarmerError,
    InvalidNoteError,
    NotAdminError,
    RequestAlreadyReviewedError,
    RequestNotFoundError,
    RoleRequestError,
    RoleService,
)

router = APIRouter(prefix="/api", tags=["roles"])


def _raise_http(e: RoleRequestError):
    if isinstance(e, NotAdminError):
        raise HTTPException(status_code=403, detail=str(e))
    if isinstance(e, RequestNotFoundError):
        raise HTTPException(status_code=404, detail=str(e))
    if isinstance(e, (AlreadyFarmerError, RequestAlreadyReviewedError)):
        raise HTTPException(status_code=409, detail=str(e))
    if isinstance(e, InvalidNoteError):
        raise HTTPException(status_code=422, detail=str(e))
    raise HTTPException(status_code=400, detail=str(e))


# ==============================
# Roles
# ==============================
@router.get("/roles/me/{role}", response_model=HasRoleResponse)
def has_role(
    role: AppRole,
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
):
    return HasRoleResponse(
        role=role.value,
        has_role=RoleService(db).has_role(session.user_id, role),
    )


# ==============================
# Farmer access requests
# ==============================
@router.post("/farmer-role-requests", response_model=FarmerRoleRequestDTO)
def request_farmer_role(
    body: FarmerRoleRequestCreate,
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
):
    try:
        req = RoleService(db).request_farmer_role(session, body.note)
    except RoleRequestError as e:
        _raise_http(e)
    return FarmerRoleRequestDTO.model_validate(req)


@router.get("/farmer-role-requests/me", response_model=MyFarmerRoleRequestResponse)
def get_my_farmer_role_request(
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
):
    req = RoleService(db).get_my_latest_request(session)
    return MyFarmerRoleRequestResponse(
        request=FarmerRoleRequestDTO.model_validate(req) if req else None
    )


@router.get("/admin/farmer-role-requests", response_model=FarmerRoleRequestListResponse)
def list_farmer_role_requests(
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
):
    try:
        rows = RoleService(db).list_requests(session)
    except RoleRequestError as e:
        _raise_http(e)
    return FarmerRoleRequestListResponse(
        requests=[FarmerRoleRequestDTO.model_validate(r) for r in rows]
    )


@router.post(
    "/admin/farmer-role-requests/{request_id}/review",
    response_model=FarmerRoleRequestDTO,
)
def review_farmer_role_request(
    request_id: str,
    body: FarmerRoleRequestReview,
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
):
    try:
        req = RoleService(db).review_farmer_role_request(
            session,
            request_id=request_id,
            decision=FarmerRequestStatus(body.decision),
            admin_note=body.admin_note,
        )
    except RoleRequestError as e:
        _raise_http(e)
    return FarmerRoleRequestDTO.model_validate(req)


# ==============================
# Profile
# ==============================
@router.get("/profile/me", response_model=ProfileDTO)
def get_my_profile(
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
):
    return ProfileDTO.model_validate(RoleService(db).get_profile(session))


@router.put("/profile/me", response_model=ProfileDTO)
def update_my_profile(
    body: ProfileUpdate,
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
):
    profile = RoleService(db).update_profile(
        session, **body.model_dump(exclude_unset=True)
    )
    return ProfileDTO.model_validate(profile)
