# meatshare/integrations/payments/stripe/stripe_webhook_client.py
import json
from typing import Any, Dict

import stripe

from meatshare.config import get_settings


def construct_event(*, payload: bytes, sig_header: str) -> Dict[str, Any]:
    """
    Verify the Stripe-Signature header and return the event as a plain dict.

    Raises ValueError for a missing secret, bad signature or bad payload.
    """
    secret = get_settings().stripe_webhook_secret
    if not secret:
        raise ValueError("STRIPE_WEBHOOK_SECRET is not set")

    try:
        stripe.Webhook.construct_event(
            payload=payload,
            sig_header=sig_header,
            secret=secret,
        )
    except stripe.SignatureVerificationError:
        raise ValueError("Invalid signature")
    except ValueError:
        raise ValueError("Invalid payload")

    # signature checked above; the raw JSON is the stable shape to work with
    try:
        event = json.loads(payload)
    except (TypeError, ValueError):
        raise ValueError("Invalid payload")
    if not isinstance(event, dict) or not event.get("id") or not event.get("type"):
        raise ValueError("Invalid payload")
    return event
