# meatshare/marketplace/api/public_shares_api.py
from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from meatshare.db.core import get_db
from meatshare.domain.types import AnimalType, SharePortion
from meatshare.farmer.services.farm_service import FarmNotFoundError
from meatshare.marketplace.dtos import (
    BrowseResponse,
    FarmListingDTO,
    listing_to_dto,
)
from meatshare.marketplace.services.share_listing_service import (
    BrowseFilters,
    ShareListingService,
)

router = APIRouter(prefix="/api", tags=["public_shares"])


@router.get("/shares/browse", response_model=BrowseResponse)
def browse_shares(
    animal_type: Optional[AnimalType] = Query(None),
    portion: Optional[SharePortion] = Query(None),
    grass_fed: bool = Query(False),
    organic: bool = Query(False),
    db: Session = Depends(get_db),
):
    """
    Farms that can take payments, best rated first, with their in-stock shares.
    """
    listings = ShareListingService(db).browse(
        BrowseFilters(
            animal_type=animal_type,
            portion=portion,
            grass_fed=grass_fed,
            organic=organic,
        )
    )
    return BrowseResponse(farms=[listing_to_dto(item) for item in listings])


@router.get("/farms/{farm_id}", response_model=FarmListingDTO)
def get_farm_detail(farm_id: UUID, db: Session = Depends(get_db)):
    try:
        listing = ShareListingService(db).farm_detail(str(farm_id))
    except FarmNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return listing_to_dto(listing)
