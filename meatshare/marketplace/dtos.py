# meatshare/marketplace/dtos.py
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from meatshare.domain.types import AnimalType, SharePortion


# ============================================================
# Farms (public view)
# ============================================================
class PublicFarmDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: Optional[str] = None
    location: str
    zip_code: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    image_url: Optional[str] = None
    badge: Optional[str] = None
    is_grass_fed: Optional[bool] = None
    is_organic: Optional[bool] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    payments_ready: bool = False


# ============================================================
# Shares
# ============================================================
class ShareDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    farm_id: str
    animal_type: AnimalType
    portion: SharePortion
    price: float
    weight_estimate: Optional[str] = None
    quantity_available: int
    next_available_date: Optional[str] = None
    created_at: Optional[datetime] = None


class ShareCreate(BaseModel):
    animal_type: AnimalType = AnimalType.BEEF
    portion: SharePortion = SharePortion.QUARTER
    price: float = Field(..., gt=0, description="USD")
    weight_estimate: Optional[str] = Field(None, max_length=120)
    quantity_available: int = Field(1, ge=0)
    next_available_date: Optional[date] = None


class FarmListingDTO(BaseModel):
    farm: PublicFarmDTO
    shares: List[ShareDTO]


class BrowseResponse(BaseModel):
    farms: List[FarmListingDTO]


# ============================================================
# Purchases
# ============================================================
class PurchaseDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    buyer_id: str
    share_id: Optional[str] = None
    farm_id: str
    farm_name: Optional[str] = None
    animal_type: Optional[str] = None
    portion: str
    price_paid: float
    weight_estimate: Optional[str] = None
    next_available_date: Optional[str] = None
    status: str
    notes: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class PurchaseListResponse(BaseModel):
    purchases: List[PurchaseDTO]


class PurchaseCancelRequest(BaseModel):
    note: Optional[str] = Field(None, max_length=500)


def purchase_to_dto(purchase) -> PurchaseDTO:
    dto = PurchaseDTO.model_validate(purchase)
    if purchase.farm is not None:
        dto.farm_name = purchase.farm.name
    share = purchase.share
    if share is not None:
        dto.animal_type = share.animal_type
        dto.weight_estimate = share.weight_estimate
        dto.next_available_date = share.next_available_date
    return dto


def listing_to_dto(listing) -> FarmListingDTO:
    return FarmListingDTO(
        farm=PublicFarmDTO.model_validate(listing.farm),
        shares=[ShareDTO.model_validate(s) for s in listing.shares],
    )
