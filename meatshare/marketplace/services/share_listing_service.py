# meatshare/marketplace/services/share_listing_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from meatshare.auth.session import AuthSession
from meatshare.db.models import AvailableShare, Farm
from meatshare.domain.types import AnimalType, SharePortion
from meatshare.farmer.repository.farm_repo import FarmRepository
from meatshare.farmer.services.farm_service import FarmNotFoundError, FarmService
from meatshare.farmer.services.onboarding_service import can_create_shares
from meatshare.marketplace.errors import (
    InvalidShareError,
    ShareNotFoundError,
    SharesGateClosedError,
)
from meatshare.marketplace.repository.share_repo import ShareRepository

logger = logging.getLogger(__name__)


@dataclass
class FarmListing:
    farm: Farm
    shares: List[AvailableShare] = field(default_factory=list)


@dataclass
class BrowseFilters:
    animal_type: Optional[AnimalType] = None
    portion: Optional[SharePortion] = None
    grass_fed: bool = False
    organic: bool = False


class ShareListingService:
    """
    Farmer-side listing management and buyer-side browsing.

    Buyer-facing reads only ever return shares with quantity_available > 0
    from active farms that finished Stripe onboarding.
    """

    def __init__(
        self,
        db: Session,
        *,
        repo: Optional[ShareRepository] = None,
        farm_repo: Optional[FarmRepository] = None,
    ) -> None:
        self.db = db
        self.repo = repo or ShareRepository(db)
        self.farm_repo = farm_repo or FarmRepository(db)
        self.farms = FarmService(db, repo=self.farm_repo)

    # -------------------------------------------------
    # Farmer side
    # -------------------------------------------------
    def create_share(
        self,
        session: AuthSession,
        *,
        animal_type: AnimalType,
        portion: SharePortion,
        price: float,
        quantity_available: int = 1,
        weight_estimate: Optional[str] = None,
        next_available_date: Optional[date] = None,
    ) -> AvailableShare:
        farm = self.farms.require_my_farm(session)
        if not can_create_shares(farm):
            raise SharesGateClosedError(
                "Finish Stripe setup before listing shares"
            )
        if price is None or price <= 0:
            raise InvalidShareError("price must be greater than 0")
        if quantity_available is None or quantity_available < 0:
            raise InvalidShareError("quantity_available must be 0 or more")

        share = self.repo.insert(
            farm_id=farm.id,
            animal_type=AnimalType(animal_type).value,
            portion=SharePortion(portion).value,
            price=float(price),
            weight_estimate=weight_estimate or None,
            quantity_available=int(quantity_available),
            next_available_date=next_available_date.isoformat() if next_available_date else None,
        )
        self.db.commit()
        logger.info("share %s listed by farm %s", share.id, farm.id)
        return share

    def delete_share(self, session: AuthSession, share_id: str) -> None:
        share = self.repo.get_by_id(share_id)
        if share is None:
            raise ShareNotFoundError("share not found")
        self.farms.require_owned_farm(session, share.farm_id)
        self.repo.delete(share)
        self.db.commit()

    def list_my_shares(self, session: AuthSession) -> List[AvailableShare]:
        farm = self.farms.require_my_farm(session)
        return self.repo.list_for_farm(farm.id)

    # -------------------------------------------------
    # Buyer side
    # -------------------------------------------------
    def browse(self, filters: Optional[BrowseFilters] = None) -> List[FarmListing]:
        filters = filters or BrowseFilters()
        farms = self.farm_repo.list_publishable()
        if filters.grass_fed:
            farms = [f for f in farms if f.is_grass_fed]
        if filters.organic:
            farms = [f for f in farms if f.is_organic]

        shares = self.repo.list_in_stock(
            [f.id for f in farms],
            animal_type=filters.animal_type.value if filters.animal_type else None,
            portion=filters.portion.value if filters.portion else None,
        )
        by_farm: dict[str, List[AvailableShare]] = {}
        for share in shares:
            by_farm.setdefault(share.farm_id, []).append(share)

        listings = [FarmListing(farm=f, shares=by_farm.get(f.id, [])) for f in farms]
        if filters.animal_type or filters.portion:
            listings = [item for item in listings if item.shares]
        return listings

    def farm_detail(self, farm_id: str) -> FarmListing:
        farm = self.farm_repo.get_by_id(farm_id)
        if farm is None or not farm.is_active:
            raise FarmNotFoundError("farm not found")
        return FarmListing(farm=farm, shares=self.repo.list_in_stock([farm.id]))
