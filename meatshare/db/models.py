# meatshare/db/models.py
from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from meatshare.db.core import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(UTC)


# ------------------------------------------------------
# Farms
# ------------------------------------------------------
class Farm(Base):
    __tablename__ = "farms"

    id = Column(String(36), primary_key=True, default=_uuid)
    owner_id = Column(String(64), nullable=False, unique=True, index=True)

    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    location = Column(String, nullable=False)
    zip_code = Column(String(10), nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    image_url = Column(String(512), nullable=True)
    badge = Column(String, nullable=True)

    is_grass_fed = Column(Boolean, nullable=True, default=False)
    is_organic = Column(Boolean, nullable=True, default=False)
    is_active = Column(Boolean, nullable=True, default=True, index=True)

    rating = Column(Float, nullable=True)
    review_count = Column(Integer, nullable=True, default=0)

    # Stripe Connect
    stripe_account_id = Column(String(100), nullable=True, index=True)
    stripe_onboarding_complete = Column(Boolean, nullable=True, default=False)

    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)

    shares = relationship(
        "AvailableShare", back_populates="farm", cascade="all, delete-orphan"
    )
    purchases = relationship("SharePurchase", back_populates="farm")

    @property
    def payments_ready(self) -> bool:
        return bool(self.stripe_account_id) and bool(self.stripe_onboarding_complete)


# ------------------------------------------------------
# Inventory (one row per listed share)
# ------------------------------------------------------
class AvailableShare(Base):
    __tablename__ = "available_shares"
    __table_args__ = (
        CheckConstraint("quantity_available >= 0", name="ck_shares_quantity_nonneg"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    farm_id = Column(String(36), ForeignKey("farms.id"), nullable=False, index=True)

    animal_type = Column(String(16), nullable=False, default="beef")
    portion = Column(String(16), nullable=False)
    price = Column(Float, nullable=False)
    weight_estimate = Column(String, nullable=True)
    quantity_available = Column(Integer, nullable=False, default=1)
    next_available_date = Column(String(10), nullable=True)

    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)

    farm = relationship("Farm", back_populates="shares")


# ------------------------------------------------------
# Purchases
# ------------------------------------------------------
class SharePurchase(Base):
    __tablename__ = "share_purchases"

    id = Column(String(36), primary_key=True, default=_uuid)
    buyer_id = Column(String(64), nullable=False, index=True)
    share_id = Column(
        String(36), ForeignKey("available_shares.id", ondelete="SET NULL"), nullable=True
    )
    farm_id = Column(String(36), ForeignKey("farms.id"), nullable=False, index=True)

    portion = Column(String(16), nullable=False)
    price_paid = Column(Float, nullable=False)
    status = Column(String(16), nullable=False, default="pending", index=True)

    stripe_checkout_session_id = Column(String(100), nullable=True, unique=True)
    stripe_payment_intent_id = Column(String(100), nullable=True, index=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)

    farm = relationship("Farm", back_populates="purchases")
    share = relationship("AvailableShare")


# ------------------------------------------------------
# Waitlists
# ------------------------------------------------------
class WaitlistEntry(Base):
    __tablename__ = "waitlist"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String, nullable=False, unique=True)
    zip_code = Column(String(10), nullable=False)
    user_type = Column(String(16), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_now)


class BuyerWaitlistEntry(Base):
    __tablename__ = "buyer_waitlist"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(64), nullable=False, index=True)
    farm_id = Column(String(36), ForeignKey("farms.id"), nullable=False, index=True)
    desired_portion = Column(String(16), nullable=False)
    animal_type = Column(String(16), nullable=False, default="beef")
    zip_code = Column(String(10), nullable=True)
    max_distance = Column(Integer, nullable=True)
    allow_contact = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=_now)


# ------------------------------------------------------
# Users: profiles / roles / role requests / memberships
# ------------------------------------------------------
class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(64), nullable=False, unique=True)
    email = Column(String, nullable=True)
    full_name = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    zip_code = Column(String(10), nullable=True)
    avatar_url = Column(String(512), nullable=True)
    is_farmer = Column(Boolean, nullable=True, default=False)
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)


class UserRole(Base):
    __tablename__ = "user_roles"
    __table_args__ = (UniqueConstraint("user_id", "role", name="uq_user_roles"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(64), nullable=False, index=True)
    role = Column(String(16), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_now)


class FarmerRoleRequest(Base):
    __tablename__ = "farmer_role_requests"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(64), nullable=False, index=True)
    status = Column(String(16), nullable=False, default="pending", index=True)
    note = Column(Text, nullable=True)
    admin_note = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)


class Membership(Base):
    __tablename__ = "memberships"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(64), nullable=False, index=True)
    membership_type = Column(String(16), nullable=False)
    tier = Column(String(32), nullable=True)
    price_paid = Column(Float, nullable=False)
    stripe_subscription_id = Column(String(100), nullable=True, unique=True)
    starts_at = Column(DateTime(timezone=True), default=_now)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    is_active = Column(Boolean, nullable=True, default=True)
    created_at = Column(DateTime(timezone=True), default=_now)


# ------------------------------------------------------
# Stripe webhook dedupe
# ------------------------------------------------------
class ProcessedStripeEvent(Base):
    __tablename__ = "processed_stripe_events"

    event_id = Column(String(100), primary_key=True)
    event_type = Column(String(100), nullable=False)
    processed_at = Column(DateTime(timezone=True), default=_now)
