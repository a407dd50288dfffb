# meatshare/farmer/dtos.py
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ============================================================
# Farm profile
# ============================================================
class FarmDTO(BaseModel):
    """The owner's view of a farm, including Stripe Connect state."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_id: str
    name: str
    description: Optional[str] = None
    location: str
    zip_code: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    image_url: Optional[str] = None
    is_grass_fed: Optional[bool] = None
    is_organic: Optional[bool] = None
    is_active: Optional[bool] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    stripe_account_id: Optional[str] = None
    stripe_onboarding_complete: Optional[bool] = None
    payments_ready: bool = False


class FarmProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    description: Optional[str] = Field(None, max_length=2000)
    location: Optional[str] = Field(None, min_length=1, max_length=200)
    zip_code: Optional[str] = Field(None, min_length=5, max_length=10)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    image_url: Optional[str] = Field(None, max_length=512)
    is_grass_fed: Optional[bool] = None
    is_organic: Optional[bool] = None


# ============================================================
# Stripe Connect onboarding
# ============================================================
class PaymentSetupResponse(BaseModel):
    farm_id: str
    account_id: str
    onboarding_url: str
    account_created: bool
    state: str


class AccountReadinessDTO(BaseModel):
    charges_enabled: bool
    payouts_enabled: bool
    details_submitted: bool
    requires_action: bool


class PaymentStatusResponse(BaseModel):
    farm_id: str
    state: str
    readiness: Optional[AccountReadinessDTO] = None
    can_create_shares: bool
    flag_written: bool
