# meatshare/farmer/services/farm_service.py
from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from meatshare.auth.session import AuthSession
from meatshare.db.models import Farm
from meatshare.domain.types import AppRole
from meatshare.farmer.repository.farm_repo import FarmRepository
from meatshare.roles.role_repo import RoleRepository

logger = logging.getLogger(__name__)

# initial profile for a freshly created farm; the farmer edits it afterwards
DEFAULT_FARM_NAME = "My Farm"
DEFAULT_FARM_DESCRIPTION = "A family farm selling quality meat."
DEFAULT_FARM_LOCATION = "Enter your location"
DEFAULT_FARM_ZIP = "00000"

EDITABLE_FIELDS = (
    "name",
    "description",
    "location",
    "zip_code",
    "latitude",
    "longitude",
    "image_url",
    "is_grass_fed",
    "is_organic",
)


# ============================================================
# Exceptions
# ============================================================
class FarmError(Exception):
    """Base farm error"""


class NotFarmerError(FarmError):
    pass


class FarmAlreadyExistsError(FarmError):
    pass


class FarmNotFoundError(FarmError):
    pass


class FarmAccessDeniedError(FarmError):
    pass


# ============================================================
# Service
# ============================================================
class FarmService:
    def __init__(
        self,
        db: Session,
        *,
        repo: Optional[FarmRepository] = None,
        role_repo: Optional[RoleRepository] = None,
    ) -> None:
        self.db = db
        self.repo = repo or FarmRepository(db)
        self.role_repo = role_repo or RoleRepository(db)

    # --------------------------------------------------------
    # Ownership helpers
    # --------------------------------------------------------
    def get_my_farm(self, session: AuthSession) -> Optional[Farm]:
        return self.repo.get_by_owner(session.user_id)

    def require_my_farm(self, session: AuthSession) -> Farm:
        farm = self.get_my_farm(session)
        if farm is None:
            raise FarmNotFoundError("You don't have a farm profile yet")
        return farm

    def require_owned_farm(self, session: AuthSession, farm_id: str) -> Farm:
        farm = self.repo.get_by_id(farm_id)
        if farm is None:
            raise FarmNotFoundError("farm not found")
        if farm.owner_id != session.user_id:
            raise FarmAccessDeniedError("farm belongs to another user")
        return farm

    def require_owned_stripe_account(self, session: AuthSession, account_id: str) -> Farm:
        farm = self.repo.get_by_stripe_account(account_id)
        if farm is None or farm.owner_id != session.user_id:
            raise FarmAccessDeniedError("Stripe account is not linked to your farm")
        return farm

    # --------------------------------------------------------
    # Public API
    # --------------------------------------------------------
    def create_farm(self, session: AuthSession, **overrides: Any) -> Farm:
        if not self.role_repo.has_role(session.user_id, AppRole.FARMER.value):
            raise NotFarmerError("farmer access is required to create a farm")
        if self.repo.get_by_owner(session.user_id) is not None:
            raise FarmAlreadyExistsError("You already have a farm profile")

        fields = {
            "name": DEFAULT_FARM_NAME,
            "description": DEFAULT_FARM_DESCRIPTION,
            "location": DEFAULT_FARM_LOCATION,
            "zip_code": DEFAULT_FARM_ZIP,
        }
        fields.update({k: v for k, v in overrides.items() if k in EDITABLE_FIELDS and v is not None})

        farm = self.repo.insert(owner_id=session.user_id, **fields)
        self.db.commit()
        logger.info("farm created farm=%s owner=%s", farm.id, session.user_id)
        return farm

    def update_farm_profile(self, session: AuthSession, **fields: Any) -> Farm:
        farm = self.require_my_farm(session)
        changes = {k: v for k, v in fields.items() if k in EDITABLE_FIELDS}
        if changes:
            self.repo.update_fields(farm, **changes)
            self.db.commit()
        return farm
