"""
Local development helpers.

/dev/token

Production tokens come from the auth provider; this issues an equivalent
token so the API can be exercised without it. Enabled only when DEV_MODE=1.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from meatshare.auth.session import create_access_token
from meatshare.config import get_settings

router = APIRouter(tags=["dev"])


def require_dev_access():
    if not get_settings().dev_mode:
        raise HTTPException(status_code=404, detail="Not Found")


class DevTokenRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    email: Optional[str] = None
    ttl_seconds: int = Field(3600, ge=60, le=86400)


class DevTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


@router.post("/token", response_model=DevTokenResponse, dependencies=[Depends(require_dev_access)])
def issue_dev_token(body: DevTokenRequest):
    return DevTokenResponse(
        access_token=create_access_token(
            user_id=body.user_id,
            email=body.email,
            ttl_seconds=body.ttl_seconds,
        )
    )
