# meatshare/waitlist/waitlist_service.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from meatshare.auth.session import AuthSession
from meatshare.db.models import BuyerWaitlistEntry, WaitlistEntry
from meatshare.domain.types import AnimalType, SharePortion
from meatshare.farmer.repository.farm_repo import FarmRepository
from meatshare.waitlist.waitlist_repo import WaitlistRepository

logger = logging.getLogger(__name__)

INVALID_FARM_ID_MESSAGE = "Enter a valid farm id (UUID)"
ALREADY_ON_WAITLIST_MESSAGE = "This email is already on the waitlist!"


# -----------------------------------------------------
# Domain Errors
# -----------------------------------------------------
class WaitlistError(Exception):
    pass


class InvalidFarmIdError(WaitlistError):
    pass


class AlreadyOnWaitlistError(WaitlistError):
    pass


class WaitlistFarmNotFoundError(WaitlistError):
    pass


class WaitlistAccessDeniedError(WaitlistError):
    pass


@dataclass
class FarmWaitlistRow:
    id: str
    zip_area: Optional[str]
    allow_contact: bool


def parse_farm_id(raw: str) -> str:
    """Local UUID check; raises before anything touches the store."""
    try:
        return str(uuid.UUID((raw or "").strip()))
    except ValueError:
        raise InvalidFarmIdError(INVALID_FARM_ID_MESSAGE)


def mask_zip(zip_code: Optional[str]) -> Optional[str]:
    """Keep the 3-digit area prefix only: "97201" -> "972xx"."""
    digits = (zip_code or "").strip()[:5]
    if len(digits) < 3:
        return None
    return f"{digits[:3]}xx"


class WaitlistService:
    def __init__(
        self,
        db: Session,
        *,
        repo: Optional[WaitlistRepository] = None,
        farm_repo: Optional[FarmRepository] = None,
    ) -> None:
        self.db = db
        self.repo = repo or WaitlistRepository(db)
        self.farm_repo = farm_repo or FarmRepository(db)

    # -------------------------------------------------
    # Pre-launch
    # -------------------------------------------------
    def join_waitlist(self, *, email: str, zip_code: str, user_type: str) -> WaitlistEntry:
        try:
            entry = self.repo.insert_entry(
                email=email.strip().lower(),
                zip_code=zip_code.strip(),
                user_type=user_type,
            )
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise AlreadyOnWaitlistError(ALREADY_ON_WAITLIST_MESSAGE)
        return entry

    # -------------------------------------------------
    # Buyer waitlist (group matching)
    # -------------------------------------------------
    def join_buyer_waitlist(
        self,
        session: AuthSession,
        *,
        farm_id: str,
        desired_portion: SharePortion,
        animal_type: AnimalType = AnimalType.BEEF,
        zip_code: Optional[str] = None,
        max_distance: Optional[int] = None,
        allow_contact: bool = False,
    ) -> BuyerWaitlistEntry:
        farm_id = parse_farm_id(farm_id)
        if self.farm_repo.get_by_id(farm_id) is None:
            raise WaitlistFarmNotFoundError("farm not found")

        entry = self.repo.insert_buyer_entry(
            user_id=session.user_id,
            farm_id=farm_id,
            desired_portion=SharePortion(desired_portion).value,
            animal_type=AnimalType(animal_type).value,
            zip_code=zip_code,
            max_distance=max_distance,
            allow_contact=allow_contact,
        )
        self.db.commit()
        return entry

    def get_farm_waitlist(self, session: AuthSession, farm_id: str) -> List[FarmWaitlistRow]:
        """
        Farmer view of buyers waiting on a farm. Zip codes are masked to
        their area and only the owner may read it.
        """
        farm_id = parse_farm_id(farm_id)

        farm = self.farm_repo.get_by_id(farm_id)
        if farm is None:
            raise WaitlistFarmNotFoundError("farm not found")
        if farm.owner_id != session.user_id:
            raise WaitlistAccessDeniedError("farm belongs to another user")

        return [
            FarmWaitlistRow(
                id=row.id,
                zip_area=mask_zip(row.zip_code),
                allow_contact=bool(row.allow_contact),
            )
            for row in self.repo.list_for_farm(farm_id)
        ]
