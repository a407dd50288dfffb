# meatshare/farmer/api/farm_api.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from meatshare.auth.session import AuthSession, get_auth_session
from meatshare.common.origin import resolve_origin
from meatshare.db.core import get_db
from meatshare.farmer.dtos import (
    AccountReadinessDTO,
    FarmDTO,
    FarmProfileUpdate,
    PaymentSetupResponse,
    PaymentStatusResponse,
)
from meatshare.farmer.services.farm_service import (
    FarmAccessDeniedError,
    FarmAlreadyExistsError,
    FarmError,
    FarmNotFoundError,
    FarmService,
    NotFarmerError,
)
from meatshare.farmer.services.onboarding_service import OnboardingService
from meatshare.integrations.payments.stripe.payment_gateway import GatewayError

router = APIRouter(prefix="/api/farmer", tags=["farmer-farm"])


def _raise_farm_error(e: FarmError):
    if isinstance(e, FarmNotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, (NotFarmerError, FarmAccessDeniedError)):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    if isinstance(e, FarmAlreadyExistsError):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


# ==============================
# Farm profile
# ==============================
@router.get("/farm", response_model=FarmDTO)
def get_my_farm(
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
):
    try:
        farm = FarmService(db).require_my_farm(session)
    except FarmError as e:
        _raise_farm_error(e)
    return FarmDTO.model_validate(farm)


@router.post("/farm", response_model=FarmDTO, status_code=status.HTTP_201_CREATED)
def create_my_farm(
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
):
    try:
        farm = FarmService(db).create_farm(session)
    except FarmError as e:
        _raise_farm_error(e)
    return FarmDTO.model_validate(farm)


@router.patch("/farm", response_model=FarmDTO)
def update_my_farm(
    payload: FarmProfileUpdate,
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
):
    try:
        farm = FarmService(db).update_farm_profile(
            session, **payload.model_dump(exclude_unset=True)
        )
    except FarmError as e:
        _raise_farm_error(e)
    return FarmDTO.model_validate(farm)


# ==============================
# Stripe Connect onboarding
# ==============================
@router.post("/payments/setup", response_model=PaymentSetupResponse)
def setup_payments(
    request: Request,
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
):
    """
    First call creates the connected account; later calls re-issue the
    onboarding link for the same account.
    """
    try:
        result = OnboardingService(db).setup_payments(
            session, origin_url=resolve_origin(request)
        )
    except FarmError as e:
        _raise_farm_error(e)
    except GatewayError as e:
        raise HTTPException(
            status_code=500,
            detail=f"Stripe setup failed: {e}",
        )
    return PaymentSetupResponse(
        farm_id=result.farm_id,
        account_id=result.account_id,
        onboarding_url=result.onboarding_url,
        account_created=result.account_created,
        state=result.state.value,
    )


@router.get("/payments/status", response_model=PaymentStatusResponse)
def get_payment_status(
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
):
    try:
        result = OnboardingService(db).sync_payment_status(session)
    except FarmError as e:
        _raise_farm_error(e)
    except GatewayError as e:
        raise HTTPException(
            status_code=500,
            detail=f"Stripe status check failed: {e}",
        )

    readiness = None
    if result.readiness is not None:
        readiness = AccountReadinessDTO(
            charges_enabled=result.readiness.charges_enabled,
            payouts_enabled=result.readiness.payouts_enabled,
            details_submitted=result.readiness.details_submitted,
            requires_action=result.readiness.requires_action,
        )
    return PaymentStatusResponse(
        farm_id=result.farm_id,
        state=result.state.value,
        readiness=readiness,
        can_create_shares=result.can_create_shares,
        flag_written=result.flag_written,
    )
