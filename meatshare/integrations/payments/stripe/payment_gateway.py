# meatshare/integrations/payments/stripe/payment_gateway.py

from __future__ import annotations

import hashlib
import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Optional

import stripe
from pydantic import BaseModel, ValidationError

from meatshare.config import get_settings
from meatshare.integrations.payments.stripe import stripe_client

logger = logging.getLogger(__name__)

PLATFORM_FEE_RATE = 0.01


class GatewayError(Exception):
    """Any failure talking to the payment processor (transport, business or config)."""


# ==================================================
# Result DTOs
# ==================================================
class CheckoutResult(BaseModel):
    session_id: str
    checkout_url: str


class ConnectedAccountResult(BaseModel):
    account_id: str
    onboarding_url: str


class OnboardingLinkResult(BaseModel):
    onboarding_url: str


class AccountReadiness(BaseModel):
    charges_enabled: bool
    payouts_enabled: bool
    details_submitted: bool

    @property
    def requires_action(self) -> bool:
        return not self.charges_enabled or not self.details_submitted


class RefundResult(BaseModel):
    refund_id: str
    status: Optional[str] = None


@dataclass(frozen=True)
class FeeBreakdown:
    amount_in_cents: int
    platform_fee: int
    farmer_receives: int


@dataclass(frozen=True)
class SharePurchaseCheckoutRequest:
    share_id: str
    farm_id: str
    farm_name: str
    buyer_id: str
    buyer_email: Optional[str]
    animal_type: str
    portion: str
    price: float
    weight_estimate: Optional[str]
    farmer_account_id: str
    attempt: Optional[str] = None
    quantity_available: Optional[int] = None


# ==================================================
# Pure helpers
# ==================================================
def _js_round(value: float) -> int:
    # half-up, matching Math.round on the client side
    return int(math.floor(value + 0.5))


def compute_platform_fee(price_dollars: float) -> FeeBreakdown:
    if price_dollars is None or price_dollars <= 0:
        raise GatewayError("price must be positive")
    amount_in_cents = _js_round(price_dollars * 100)
    platform_fee = _js_round(amount_in_cents * PLATFORM_FEE_RATE)
    return FeeBreakdown(
        amount_in_cents=amount_in_cents,
        platform_fee=platform_fee,
        farmer_receives=amount_in_cents - platform_fee,
    )


def share_checkout_idempotency_key(
    *,
    share_id: str,
    buyer_id: str,
    attempt: Optional[str] = None,
    quantity_available: Optional[int] = None,
) -> str:
    """
    Stable key for one purchase attempt.

    Without an explicit attempt id the current time window is used, so a
    double click or a retry inside the window reuses the same session.
    The share's remaining stock is part of that default, so buying the
    next unit right after a completed purchase starts a fresh session.
    """
    if not attempt:
        window = get_settings().checkout_idempotency_window_seconds
        attempt = f"w{int(time.time()) // max(window, 1)}"
        if quantity_available is not None:
            attempt = f"{attempt}:q{quantity_available}"
    raw = f"share-purchase:{share_id}:{buyer_id}:{attempt}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def share_product_name(portion: str, animal_type: str) -> str:
    return f"{portion} {animal_type[:1].upper()}{animal_type[1:]} Share"


def _field(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    value = getattr(obj, name, None)
    if value is None:
        try:
            value = obj[name]
        except (KeyError, TypeError, IndexError):
            value = None
    return value


# ==================================================
# Gateway
# ==================================================
class PaymentGateway:
    """
    Thin adapter between the workflows and Stripe.

    Responsibilities:
      - choose parameters / redirect URLs for each operation
      - normalize SDK objects into typed results
      - turn every failure into GatewayError (no retries, no classification)

    Policy:
      - no database access
      - origin comes from the caller and is the only source of redirect hosts
    """

    def __init__(self, *, client: Any = None) -> None:
        self._client = client or stripe_client

    # -------------------------
    # Internal helper
    # -------------------------
    def _call(self, label: str, fn, **kwargs):
        try:
            return fn(**kwargs)
        except stripe.StripeError as e:
            logger.exception("%s failed", label)
            raise GatewayError(getattr(e, "user_message", None) or str(e)) from e
        except GatewayError:
            raise
        except Exception as e:
            logger.exception("%s failed", label)
            raise GatewayError(str(e)) from e

    @staticmethod
    def _shape(model, label: str, **values):
        try:
            return model(**values)
        except ValidationError as e:
            logger.error("%s returned an unexpected response shape: %s", label, e)
            raise GatewayError(f"{label}: unexpected response shape") from e

    # ==================================================
    # Memberships
    # ==================================================
    def create_subscription_checkout(
        self,
        *,
        price_tier: str,
        user_id: str,
        user_email: Optional[str],
        origin_url: str,
    ) -> CheckoutResult:
        settings = get_settings()
        price_ids = {
            "buyer": settings.stripe_buyer_price_id,
            "farmer": settings.stripe_farmer_price_id,
        }
        if price_tier not in price_ids:
            raise GatewayError(f"Unknown price tier: {price_tier}")
        price_id = price_ids[price_tier]
        if not price_id:
            raise GatewayError(f"No Stripe price configured for tier '{price_tier}'")

        origin = origin_url.rstrip("/")
        session = self._call(
            "create_subscription_checkout",
            self._client.create_subscription_checkout_session,
            price_id=price_id,
            customer_email=user_email,
            metadata={"userId": user_id, "membershipType": price_tier},
            success_url=f"{origin}/dashboard?success=true",
            cancel_url=f"{origin}/#pricing",
        )
        return self._shape(
            CheckoutResult,
            "create_subscription_checkout",
            session_id=_field(session, "id"),
            checkout_url=_field(session, "url"),
        )

    # ==================================================
    # Connect onboarding
    # ==================================================
    def _onboarding_link(self, *, account_id: str, origin: str) -> OnboardingLinkResult:
        link = self._call(
            "create_account_onboarding_link",
            self._client.create_account_onboarding_link,
            account_id=account_id,
            refresh_url=f"{origin}/farmer-dashboard?refresh=true",
            return_url=f"{origin}/farmer-dashboard?onboarding=complete",
        )
        return self._shape(
            OnboardingLinkResult,
            "create_account_onboarding_link",
            onboarding_url=_field(link, "url"),
        )

    def create_connected_account(
        self,
        *,
        user_id: str,
        email: Optional[str],
        farm_name: str,
        origin_url: str,
    ) -> ConnectedAccountResult:
        """
        Two sequential calls. If the link call fails the account already
        exists on Stripe; nothing is rolled back.
        """
        origin = origin_url.rstrip("/")
        account = self._call(
            "create_connected_account",
            self._client.create_express_account,
            email=email,
            business_name=farm_name,
            business_url=f"{origin}/farm/{user_id}",
            metadata={"userId": user_id, "farmName": farm_name},
        )
        account_id = _field(account, "id")
        if not account_id:
            raise GatewayError("create_connected_account: unexpected response shape")

        link = self._onboarding_link(account_id=account_id, origin=origin)
        return ConnectedAccountResult(
            account_id=account_id,
            onboarding_url=link.onboarding_url,
        )

    def refresh_onboarding_link(
        self, *, account_id: str, origin_url: str
    ) -> OnboardingLinkResult:
        return self._onboarding_link(account_id=account_id, origin=origin_url.rstrip("/"))

    def get_account_readiness(self, *, account_id: str) -> AccountReadiness:
        account = self._call(
            "get_account_readiness",
            self._client.retrieve_account,
            account_id=account_id,
        )
        return self._shape(
            AccountReadiness,
            "get_account_readiness",
            charges_enabled=_field(account, "charges_enabled"),
            payouts_enabled=_field(account, "payouts_enabled"),
            details_submitted=_field(account, "details_submitted"),
        )

    # ==================================================
    # Share purchases
    # ==================================================
    def create_share_purchase_checkout(
        self,
        req: SharePurchaseCheckoutRequest,
        *,
        origin_url: str,
    ) -> CheckoutResult:
        fees = compute_platform_fee(req.price)
        origin = origin_url.rstrip("/")

        session = self._call(
            "create_share_purchase_checkout",
            self._client.create_connect_payment_checkout_session,
            product_name=share_product_name(req.portion, req.animal_type),
            product_description=f"From {req.farm_name} - {req.weight_estimate or ''}".rstrip(" -"),
            unit_amount_cents=fees.amount_in_cents,
            application_fee_cents=fees.platform_fee,
            destination_account_id=req.farmer_account_id,
            customer_email=req.buyer_email,
            # both levels carry ids; webhook payloads differ by event type
            payment_intent_metadata={
                "shareId": req.share_id,
                "farmId": req.farm_id,
                "buyerId": req.buyer_id,
                "animalType": req.animal_type,
                "portion": req.portion,
            },
            session_metadata={
                "shareId": req.share_id,
                "farmId": req.farm_id,
                "buyerId": req.buyer_id,
                "type": "share_purchase",
            },
            success_url=f"{origin}/buyer-dashboard?purchase=success&share={req.share_id}",
            cancel_url=f"{origin}/farm/{req.farm_id}?cancelled=true",
            idempotency_key=share_checkout_idempotency_key(
                share_id=req.share_id,
                buyer_id=req.buyer_id,
                attempt=req.attempt,
                quantity_available=req.quantity_available,
            ),
        )
        return self._shape(
            CheckoutResult,
            "create_share_purchase_checkout",
            session_id=_field(session, "id"),
            checkout_url=_field(session, "url"),
        )

    def refund_payment(self, *, payment_intent_id: str, reason: str) -> RefundResult:
        refund = self._call(
            "refund_payment",
            self._client.create_refund,
            payment_intent_id=payment_intent_id,
            metadata={"reason": reason},
            idempotency_key=f"refund:{payment_intent_id}",
        )
        return self._shape(
            RefundResult,
            "refund_payment",
            refund_id=_field(refund, "id"),
            status=_field(refund, "status"),
        )
