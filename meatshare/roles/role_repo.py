# meatshare/roles/role_repo.py
from __future__ import annotations

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from meatshare.db.models import FarmerRoleRequest, Profile, UserRole


class RoleRepository:
    """
    user_roles / farmer_role_requests / profiles access.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    # -------------------------------------------------
    # user_roles
    # -------------------------------------------------
    def has_role(self, user_id: str, role: str) -> bool:
        row = self.db.execute(
            select(UserRole.id)
            .where(UserRole.user_id == user_id, UserRole.role == role)
            .limit(1)
        ).first()
        return row is not None

    def grant_role(self, user_id: str, role: str) -> None:
        if self.has_role(user_id, role):
            return
        self.db.add(UserRole(user_id=user_id, role=role))
        self.db.flush()

    # -------------------------------------------------
    # farmer_role_requests
    # -------------------------------------------------
    def get_request(self, request_id: str) -> Optional[FarmerRoleRequest]:
        return self.db.get(FarmerRoleRequest, request_id)

    def latest_request_for_user(self, user_id: str) -> Optional[FarmerRoleRequest]:
        return self.db.execute(
            select(FarmerRoleRequest)
            .where(FarmerRoleRequest.user_id == user_id)
            .order_by(FarmerRoleRequest.created_at.desc())
            .limit(1)
        ).scalar_one_or_none()

    def pending_request_for_user(self, user_id: str) -> Optional[FarmerRoleRequest]:
        return self.db.execute(
            select(FarmerRoleRequest)
            .where(
                FarmerRoleRequest.user_id == user_id,
                FarmerRoleRequest.status == "pending",
            )
            .order_by(FarmerRoleRequest.created_at.desc())
            .limit(1)
        ).scalar_one_or_none()

    def list_requests(self, *, limit: int = 200) -> List[FarmerRoleRequest]:
        return list(
            self.db.execute(
                select(FarmerRoleRequest)
                .order_by(FarmerRoleRequest.created_at.desc())
                .limit(limit)
            ).scalars()
        )

    def insert_request(self, *, user_id: str, note: Optional[str]) -> FarmerRoleRequest:
        req = FarmerRoleRequest(user_id=user_id, note=note, status="pending")
        self.db.add(req)
        self.db.flush()
        return req

    # -------------------------------------------------
    # profiles
    # -------------------------------------------------
    def get_profile(self, user_id: str) -> Optional[Profile]:
        return self.db.execute(
            select(Profile).where(Profile.user_id == user_id).limit(1)
        ).scalar_one_or_none()

    def upsert_profile(self, user_id: str, **fields) -> Profile:
        profile = self.get_profile(user_id)
        if profile is None:
            profile = Profile(user_id=user_id)
            self.db.add(profile)
        for key, value in fields.items():
            setattr(profile, key, value)
        self.db.flush()
        return profile
