# meatshare/domain/types.py
from __future__ import annotations

from enum import Enum


class AnimalType(str, Enum):
    BEEF = "beef"
    PORK = "pork"


class SharePortion(str, Enum):
    EIGHTH = "1/8"
    QUARTER = "1/4"
    HALF = "1/2"
    THREE_QUARTERS = "3/4"
    WHOLE = "whole"


class PurchaseStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class FarmerRequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AppRole(str, Enum):
    ADMIN = "admin"
    FARMER = "farmer"
    BUYER = "buyer"


class MembershipType(str, Enum):
    BUYER = "buyer"
    FARMER = "farmer"
