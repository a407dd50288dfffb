# meatshare/memberships/membership_api.py
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from meatshare.auth.session import AuthSession, get_auth_session
from meatshare.db.core import get_db
from meatshare.memberships.membership_service import MembershipService

router = APIRouter(prefix="/api/memberships", tags=["memberships"])


class MembershipDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    membership_type: str
    tier: Optional[str] = None
    price_paid: float
    starts_at: datetime
    expires_at: datetime
    is_active: Optional[bool] = None


class MembershipListResponse(BaseModel):
    memberships: List[MembershipDTO]


@router.get("/me", response_model=MembershipListResponse)
def list_my_memberships(
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
):
    rows = MembershipService(db).list_my_memberships(session)
    return MembershipListResponse(memberships=[MembershipDTO.model_validate(m) for m in rows])
