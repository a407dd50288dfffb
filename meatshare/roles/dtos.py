# meatshare/roles/dtos.py
from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class FarmerRoleRequestDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    status: str
    note: Optional[str] = None
    admin_note: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class FarmerRoleRequestCreate(BaseModel):
    note: Optional[str] = Field(None, description="optional, 500 characters max after trim")


class FarmerRoleRequestReview(BaseModel):
    decision: Literal["approved", "rejected"]
    admin_note: Optional[str] = None


class MyFarmerRoleRequestResponse(BaseModel):
    request: Optional[FarmerRoleRequestDTO] = None


class FarmerRoleRequestListResponse(BaseModel):
    requests: List[FarmerRoleRequestDTO]


class HasRoleResponse(BaseModel):
    role: str
    has_role: bool


class ProfileDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    phone: Optional[str] = None
    zip_code: Optional[str] = None
    avatar_url: Optional[str] = None
    is_farmer: Optional[bool] = None


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, max_length=200)
    phone: Optional[str] = Field(None, max_length=40)
    zip_code: Optional[str] = Field(None, max_length=10)
    avatar_url: Optional[str] = Field(None, max_length=512)
