# meatshare/roles/role_service.py
from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from meatshare.auth.session import AuthSession
from meatshare.db.models import FarmerRoleRequest, Profile
from meatshare.domain.types import AppRole, FarmerRequestStatus
from meatshare.roles.role_repo import RoleRepository

logger = logging.getLogger(__name__)

NOTE_MAX_LENGTH = 500


# -----------------------------------------------------
# Domain Errors
# -----------------------------------------------------
class RoleRequestError(Exception):
    pass


class InvalidNoteError(RoleRequestError):
    pass


class AlreadyFarmerError(RoleRequestError):
    pass


class RequestNotFoundError(RoleRequestError):
    pass


class RequestAlreadyReviewedError(RoleRequestError):
    pass


class NotAdminError(RoleRequestError):
    pass


def normalize_note(note: Optional[str]) -> Optional[str]:
    """Trim; empty becomes None; longer than 500 characters is rejected."""
    if note is None:
        return None
    trimmed = note.strip()
    if len(trimmed) > NOTE_MAX_LENGTH:
        raise InvalidNoteError(
            f"Optional note must be {NOTE_MAX_LENGTH} characters or less"
        )
    return trimmed or None


# -----------------------------------------------------
# Service
# -----------------------------------------------------
class RoleService:
    """
    Role checks and the farmer-access request workflow.

    Approval grants the farmer role in the same transaction as the status
    change, so a request can never read "approved" without the role.
    """

    def __init__(self, db: Session, *, repo: Optional[RoleRepository] = None) -> None:
        self.db = db
        self.repo = repo or RoleRepository(db)

    # -------------------------------------------------
    # Roles
    # -------------------------------------------------
    def has_role(self, user_id: str, role: AppRole) -> bool:
        return self.repo.has_role(user_id, role.value)

    def require_admin(self, session: AuthSession) -> None:
        if not self.has_role(session.user_id, AppRole.ADMIN):
            raise NotAdminError("admin role required")

    # -------------------------------------------------
    # Farmer side
    # -------------------------------------------------
    def request_farmer_role(
        self, session: AuthSession, note: Optional[str]
    ) -> FarmerRoleRequest:
        clean_note = normalize_note(note)

        if self.has_role(session.user_id, AppRole.FARMER):
            raise AlreadyFarmerError("You already have farmer access")

        pending = self.repo.pending_request_for_user(session.user_id)
        if pending is not None:
            return pending

        req = self.repo.insert_request(user_id=session.user_id, note=clean_note)
        self.db.commit()
        logger.info("farmer role requested user=%s request=%s", session.user_id, req.id)
        return req

    def get_my_latest_request(self, session: AuthSession) -> Optional[FarmerRoleRequest]:
        return self.repo.latest_request_for_user(session.user_id)

    # -------------------------------------------------
    # Admin side
    # -------------------------------------------------
    def list_requests(self, session: AuthSession) -> List[FarmerRoleRequest]:
        self.require_admin(session)
        return self.repo.list_requests(limit=200)

    def review_farmer_role_request(
        self,
        session: AuthSession,
        *,
        request_id: str,
        decision: FarmerRequestStatus,
        admin_note: Optional[str],
    ) -> FarmerRoleRequest:
        self.require_admin(session)

        if decision == FarmerRequestStatus.PENDING:
            raise RoleRequestError("decision must be approved or rejected")
        clean_note = normalize_note(admin_note)

        req = self.repo.get_request(request_id)
        if req is None:
            raise RequestNotFoundError("request not found")
        if req.status != FarmerRequestStatus.PENDING.value:
            raise RequestAlreadyReviewedError(f"request already {req.status}")

        req.status = decision.value
        req.admin_note = clean_note

        if decision == FarmerRequestStatus.APPROVED:
            self.repo.grant_role(req.user_id, AppRole.FARMER.value)
            self.repo.upsert_profile(req.user_id, is_farmer=True)

        self.db.commit()
        logger.info(
            "farmer role request %s %s by admin=%s", req.id, decision.value, session.user_id
        )
        return req

    # -------------------------------------------------
    # Profiles
    # -------------------------------------------------
    def get_profile(self, session: AuthSession) -> Profile:
        profile = self.repo.get_profile(session.user_id)
        if profile is None:
            profile = self.repo.upsert_profile(session.user_id, email=session.email)
            self.db.commit()
        return profile

    def update_profile(self, session: AuthSession, **fields) -> Profile:
        profile = self.repo.upsert_profile(session.user_id, **fields)
        if session.email and not profile.email:
            profile.email = session.email
        self.db.commit()
        return profile
