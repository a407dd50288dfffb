# meatshare/farmer/api/shares_api.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from meatshare.auth.session import AuthSession, get_auth_session
from meatshare.db.core import get_db
from meatshare.farmer.services.farm_service import (
    FarmAccessDeniedError,
    FarmError,
    FarmNotFoundError,
)
from meatshare.marketplace.dtos import ShareCreate, ShareDTO
from meatshare.marketplace.errors import (
    InvalidShareError,
    ShareNotFoundError,
    SharesGateClosedError,
)
from meatshare.marketplace.services.share_listing_service import ShareListingService

router = APIRouter(prefix="/api/farmer/shares", tags=["farmer-shares"])


@router.get("", response_model=List[ShareDTO])
def list_my_shares(
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
):
    try:
        shares = ShareListingService(db).list_my_shares(session)
    except FarmNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return [ShareDTO.model_validate(s) for s in shares]


@router.post("", response_model=ShareDTO, status_code=status.HTTP_201_CREATED)
def create_share(
    payload: ShareCreate,
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
):
    """Listing is refused (409) until the farm is payments-ready."""
    try:
        share = ShareListingService(db).create_share(session, **payload.model_dump())
    except FarmNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SharesGateClosedError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except InvalidShareError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return ShareDTO.model_validate(share)


@router.delete("/{share_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_share(
    share_id: str,
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
):
    try:
        ShareListingService(db).delete_share(session, share_id)
    except (ShareNotFoundError, FarmNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except FarmAccessDeniedError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except FarmError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
