# meatshare/integrations/payments/stripe/stripe_checkout_api.py
"""
Payment endpoints called by the web client.

Wire contract (camelCase JSON in and out):
  - success: 200 with the documented fields
  - processor failure: 500 {"error": "<processor message>"}
  - wrong method: 405 {"error": "Method not allowed"} (see main.py)
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

from meatshare.auth.session import AuthSession, get_auth_session
from meatshare.common.origin import resolve_origin
from meatshare.db.core import get_db
from meatshare.farmer.services.farm_service import (
    FarmAccessDeniedError,
    FarmError,
    FarmNotFoundError,
    FarmService,
)
from meatshare.farmer.services.onboarding_service import OnboardingService
from meatshare.integrations.payments.stripe.payment_gateway import (
    GatewayError,
    PaymentGateway,
)
from meatshare.marketplace.errors import (
    FarmNotPayableError,
    InvalidShareError,
    MarketplaceError,
    PurchaseAccessDeniedError,
    ShareNotFoundError,
    ShareSoldOutError,
)
from meatshare.marketplace.services.purchase_checkout_service import (
    PurchaseCheckoutService,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["payments"])


# ==============================
# Request / Response bodies
# ==============================
class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateCheckoutRequest(_CamelModel):
    price_type: str
    user_id: str
    user_email: Optional[str] = None


class CheckoutUrlResponse(_CamelModel):
    url: str


class CreateConnectAccountRequest(_CamelModel):
    user_id: str
    email: Optional[str] = None
    farm_name: str


class CreateConnectAccountResponse(_CamelModel):
    account_id: str
    onboarding_url: str


class StripeAccountRequest(_CamelModel):
    stripe_account_id: str


class OnboardingUrlResponse(_CamelModel):
    onboarding_url: str


class ConnectStatusResponse(_CamelModel):
    charges_enabled: bool
    payouts_enabled: bool
    details_submitted: bool
    requires_action: bool


class PurchaseShareRequest(_CamelModel):
    share_id: str
    farm_id: str
    farm_name: Optional[str] = None
    farmer_stripe_account_id: Optional[str] = None
    buyer_id: str
    buyer_email: Optional[str] = None
    animal_type: Optional[str] = None
    portion: Optional[str] = None
    price: Optional[float] = None
    weight_estimate: Optional[str] = None
    attempt_id: Optional[str] = None


# ==============================
# Helpers
# ==============================
def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _gateway_error(label: str, e: GatewayError) -> JSONResponse:
    logger.error("%s error: %s", label, e)
    return _error(500, str(e))


def _farm_error(e: FarmError) -> JSONResponse:
    if isinstance(e, FarmNotFoundError):
        return _error(404, str(e))
    if isinstance(e, FarmAccessDeniedError):
        return _error(403, str(e))
    return _error(400, str(e))


def _marketplace_error(e: MarketplaceError) -> JSONResponse:
    if isinstance(e, PurchaseAccessDeniedError):
        return _error(403, str(e))
    if isinstance(e, ShareNotFoundError):
        return _error(404, str(e))
    if isinstance(e, (ShareSoldOutError, FarmNotPayableError)):
        return _error(409, str(e))
    if isinstance(e, InvalidShareError):
        return _error(400, str(e))
    return _error(400, str(e))


# ==============================
# Endpoints
# ==============================
@router.post("/create-checkout", response_model=CheckoutUrlResponse)
def create_checkout(
    body: CreateCheckoutRequest,
    request: Request,
    session: AuthSession = Depends(get_auth_session),
):
    """Membership subscription checkout for the buyer or farmer tier."""
    if body.user_id != session.user_id:
        return _error(403, "userId does not match the signed-in user")
    try:
        result = PaymentGateway().create_subscription_checkout(
            price_tier=body.price_type,
            user_id=body.user_id,
            user_email=body.user_email or session.email,
            origin_url=resolve_origin(request),
        )
    except GatewayError as e:
        return _gateway_error("create-checkout", e)
    return CheckoutUrlResponse(url=result.checkout_url)


@router.post("/create-connect-account", response_model=CreateConnectAccountResponse)
def create_connect_account(
    body: CreateConnectAccountRequest,
    request: Request,
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
):
    """
    Creates the farmer's Express account and stores its id on the farm.
    A farm that already has an account gets a fresh onboarding link for it.
    """
    if body.user_id != session.user_id:
        return _error(403, "userId does not match the signed-in user")
    try:
        result = OnboardingService(db).setup_payments(
            session,
            origin_url=resolve_origin(request),
            email=body.email,
            farm_name=body.farm_name,
        )
    except FarmError as e:
        return _farm_error(e)
    except GatewayError as e:
        return _gateway_error("create-connect-account", e)
    return CreateConnectAccountResponse(
        account_id=result.account_id,
        onboarding_url=result.onboarding_url,
    )


@router.post("/refresh-connect-onboarding", response_model=OnboardingUrlResponse)
def refresh_connect_onboarding(
    body: StripeAccountRequest,
    request: Request,
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
):
    try:
        FarmService(db).require_owned_stripe_account(session, body.stripe_account_id)
        link = PaymentGateway().refresh_onboarding_link(
            account_id=body.stripe_account_id,
            origin_url=resolve_origin(request),
        )
    except FarmError as e:
        return _farm_error(e)
    except GatewayError as e:
        return _gateway_error("refresh-connect-onboarding", e)
    return OnboardingUrlResponse(onboarding_url=link.onboarding_url)


@router.post("/check-connect-status", response_model=ConnectStatusResponse)
def check_connect_status(
    body: StripeAccountRequest,
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
):
    """Readiness of the caller's connected account; flips the farm flag once ready."""
    try:
        FarmService(db).require_owned_stripe_account(session, body.stripe_account_id)
        status = OnboardingService(db).sync_payment_status(session)
    except FarmError as e:
        return _farm_error(e)
    except GatewayError as e:
        return _gateway_error("check-connect-status", e)

    readiness = status.readiness
    return ConnectStatusResponse(
        charges_enabled=readiness.charges_enabled,
        payouts_enabled=readiness.payouts_enabled,
        details_submitted=readiness.details_submitted,
        requires_action=readiness.requires_action,
    )


@router.post("/purchase-share", response_model=CheckoutUrlResponse)
def purchase_share(
    body: PurchaseShareRequest,
    request: Request,
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
):
    """One-time checkout for a share; funds go to the farm minus the platform fee."""
    try:
        result = PurchaseCheckoutService(db).start_share_purchase(
            session,
            share_id=body.share_id,
            farm_id=body.farm_id,
            buyer_id=body.buyer_id,
            buyer_email=body.buyer_email,
            farmer_account_id=body.farmer_stripe_account_id,
            origin_url=resolve_origin(request),
            attempt=body.attempt_id,
        )
    except MarketplaceError as e:
        return _marketplace_error(e)
    except GatewayError as e:
        return _gateway_error("purchase-share", e)
    return CheckoutUrlResponse(url=result.checkout_url)
