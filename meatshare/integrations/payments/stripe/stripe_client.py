# meatshare/integrations/payments/stripe/stripe_client.py

from functools import lru_cache
from typing import Any, Dict, Optional

import stripe

from meatshare.config import get_settings


# ------------------------------------------------------------
# Stripe setup
# ------------------------------------------------------------
@lru_cache(maxsize=1)
def _apply_config(secret_key: str, timeout_seconds: float) -> None:
    # runs again only when the key or timeout changes
    stripe.api_key = secret_key
    stripe.max_network_retries = 0
    stripe.default_http_client = stripe.RequestsClient(timeout=timeout_seconds)


def _configure() -> None:
    settings = get_settings()
    if not settings.stripe_secret_key:
        raise RuntimeError("STRIPE_SECRET_KEY is not set")
    _apply_config(settings.stripe_secret_key, settings.stripe_timeout_seconds)


# ------------------------------------------------------------
# Checkout
# ------------------------------------------------------------
def create_subscription_checkout_session(
    *,
    price_id: str,
    customer_email: Optional[str],
    metadata: Dict[str, str],
    success_url: str,
    cancel_url: str,
):
    """
    Hosted subscription checkout. Values are passed through unchanged;
    URL construction belongs to the caller.
    """
    _configure()
    return stripe.checkout.Session.create(
        mode="subscription",
        payment_method_types=["card"],
        line_items=[{"price": price_id, "quantity": 1}],
        success_url=success_url,
        cancel_url=cancel_url,
        customer_email=customer_email,
        metadata=metadata,
    )


def create_connect_payment_checkout_session(
    *,
    product_name: str,
    product_description: str,
    unit_amount_cents: int,
    application_fee_cents: int,
    destination_account_id: str,
    customer_email: Optional[str],
    payment_intent_metadata: Dict[str, str],
    session_metadata: Dict[str, str],
    success_url: str,
    cancel_url: str,
    idempotency_key: Optional[str] = None,
):
    """
    One-time payment whose funds go to a connected account, minus the
    application fee kept by the platform.
    """
    _configure()
    return stripe.checkout.Session.create(
        mode="payment",
        payment_method_types=["card"],
        line_items=[
            {
                "price_data": {
                    "currency": "usd",
                    "product_data": {
                        "name": product_name,
                        "description": product_description,
                    },
                    "unit_amount": unit_amount_cents,
                },
                "quantity": 1,
            }
        ],
        payment_intent_data={
            "application_fee_amount": application_fee_cents,
            "transfer_data": {"destination": destination_account_id},
            "metadata": payment_intent_metadata,
        },
        customer_email=customer_email,
        success_url=success_url,
        cancel_url=cancel_url,
        metadata=session_metadata,
        idempotency_key=idempotency_key,
    )


# ------------------------------------------------------------
# Connect
# ------------------------------------------------------------
def create_express_account(
    *,
    email: Optional[str],
    business_name: str,
    business_url: str,
    metadata: Dict[str, str],
):
    _configure()
    return stripe.Account.create(
        type="express",
        country="US",
        email=email,
        capabilities={
            "card_payments": {"requested": True},
            "transfers": {"requested": True},
        },
        business_type="individual",
        business_profile={
            "name": business_name,
            "mcc": "5499",  # misc food stores
            "url": business_url,
        },
        metadata=metadata,
    )


def create_account_onboarding_link(
    *,
    account_id: str,
    refresh_url: str,
    return_url: str,
):
    _configure()
    return stripe.AccountLink.create(
        account=account_id,
        refresh_url=refresh_url,
        return_url=return_url,
        type="account_onboarding",
    )


def retrieve_account(account_id: str):
    _configure()
    return stripe.Account.retrieve(account_id)


# ------------------------------------------------------------
# Refunds
# ------------------------------------------------------------
def create_refund(
    *,
    payment_intent_id: str,
    metadata: Dict[str, Any],
    idempotency_key: Optional[str] = None,
):
    """Full refund; for destination charges the transfer is reversed too."""
    _configure()
    return stripe.Refund.create(
        payment_intent=payment_intent_id,
        reverse_transfer=True,
        refund_application_fee=True,
        metadata=metadata,
        idempotency_key=idempotency_key,
    )
