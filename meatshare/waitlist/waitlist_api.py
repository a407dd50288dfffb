# meatshare/waitlist/waitlist_api.py
from __future__ import annotations

from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from meatshare.auth.session import AuthSession, get_auth_session
from meatshare.db.core import get_db
from meatshare.domain.types import AnimalType, SharePortion
from meatshare.waitlist.waitlist_service import (
    AlreadyOnWaitlistError,
    InvalidFarmIdError,
    WaitlistAccessDeniedError,
    WaitlistError,
    WaitlistFarmNotFoundError,
    WaitlistService,
)

router = APIRouter(prefix="/api", tags=["waitlist"])


# ==============================
# Request / Response bodies
# ==============================
class WaitlistSignupRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254, pattern=r"^[^@\s]+@[^@\s]+$")
    zip_code: str = Field(..., min_length=3, max_length=10)
    user_type: Literal["buyer", "farmer"] = "buyer"

    @field_validator("email", "zip_code", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v


class WaitlistSignupResponse(BaseModel):
    ok: bool = True
    id: str


class BuyerWaitlistRequest(BaseModel):
    desired_portion: SharePortion
    animal_type: AnimalType = AnimalType.BEEF
    zip_code: Optional[str] = Field(None, max_length=10)
    max_distance: Optional[int] = Field(None, ge=0)
    allow_contact: bool = False


class FarmWaitlistRowDTO(BaseModel):
    id: str
    zip_area: Optional[str] = None
    allow_contact: bool


class FarmWaitlistResponse(BaseModel):
    rows: List[FarmWaitlistRowDTO]


def _raise_waitlist_error(e: WaitlistError):
    if isinstance(e, InvalidFarmIdError):
        raise HTTPException(status_code=422, detail=str(e))
    if isinstance(e, WaitlistFarmNotFoundError):
        raise HTTPException(status_code=404, detail=str(e))
    if isinstance(e, WaitlistAccessDeniedError):
        raise HTTPException(status_code=403, detail=str(e))
    if isinstance(e, AlreadyOnWaitlistError):
        raise HTTPException(status_code=409, detail=str(e))
    raise HTTPException(status_code=400, detail=str(e))


# ==============================
# Endpoints
# ==============================
@router.post("/waitlist", response_model=WaitlistSignupResponse, status_code=status.HTTP_201_CREATED)
def join_waitlist(body: WaitlistSignupRequest, db: Session = Depends(get_db)):
    try:
        entry = WaitlistService(db).join_waitlist(
            email=body.email,
            zip_code=body.zip_code,
            user_type=body.user_type,
        )
    except WaitlistError as e:
        _raise_waitlist_error(e)
    return WaitlistSignupResponse(id=entry.id)


@router.post(
    "/farms/{farm_id}/waitlist",
    response_model=WaitlistSignupResponse,
    status_code=status.HTTP_201_CREATED,
)
def join_buyer_waitlist(
    farm_id: str,
    body: BuyerWaitlistRequest,
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
):
    try:
        entry = WaitlistService(db).join_buyer_waitlist(
            session, farm_id=farm_id, **body.model_dump()
        )
    except WaitlistError as e:
        _raise_waitlist_error(e)
    return WaitlistSignupResponse(id=entry.id)


@router.get("/farmer/waitlist", response_model=FarmWaitlistResponse)
def get_farm_waitlist(
    farm_id: str = Query(..., description="farm UUID"),
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
):
    try:
        rows = WaitlistService(db).get_farm_waitlist(session, farm_id)
    except WaitlistError as e:
        _raise_waitlist_error(e)
    return FarmWaitlistResponse(
        rows=[
            FarmWaitlistRowDTO(id=r.id, zip_area=r.zip_area, allow_contact=r.allow_contact)
            for r in rows
        ]
    )
