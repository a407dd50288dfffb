# meatshare/integrations/payments/stripe/stripe_webhook_service.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from meatshare.farmer.services.onboarding_service import OnboardingService
from meatshare.integrations.payments.stripe.payment_gateway import PaymentGateway
from meatshare.integrations.payments.stripe.stripe_webhook_repository import (
    StripeWebhookRepository,
)
from meatshare.marketplace.purchase_state import IllegalTransitionError
from meatshare.marketplace.services.purchase_status_service import (
    PurchaseStatusService,
)
from meatshare.memberships.membership_service import MembershipService

logger = logging.getLogger(__name__)


class StripeWebhookService:
    """
    Stripe Webhook Service

    Responsibilities:
      - interpret the Stripe event type
      - delegate to the purchase / membership / onboarding services
      - apply each event id at most once

    Policy:
      - the processed-event marker and the event's effects share one commit
      - unknown event types are acknowledged and ignored
    """

    def __init__(
        self,
        db: Session,
        *,
        gateway: Optional[PaymentGateway] = None,
        repo: Optional[StripeWebhookRepository] = None,
    ) -> None:
        self.db = db
        self.gateway = gateway or PaymentGateway()
        self.repo = repo or StripeWebhookRepository(db)
        self.purchases = PurchaseStatusService(db, gateway=self.gateway)
        self.memberships = MembershipService(db)
        self.onboarding = OnboardingService(db, gateway=self.gateway)

    # -------------------------
    # Dispatch
    # -------------------------
    def _apply(self, event_type: str, obj: Dict[str, Any]) -> bool:
        if event_type == "checkout.session.completed":
            if obj.get("mode") == "subscription":
                return self.memberships.record_subscription_checkout(obj) is not None
            return self.purchases.record_checkout_completed(obj) is not None

        if event_type == "checkout.session.async_payment_succeeded":
            return self.purchases.record_checkout_completed(obj) is not None

        if event_type == "checkout.session.async_payment_failed":
            return self.purchases.handle_async_payment_failed(obj) is not None

        if event_type == "charge.refunded":
            return self.purchases.handle_charge_refunded(obj) is not None

        if event_type == "account.updated":
            account_id = obj.get("id")
            if not isinstance(account_id, str):
                return False
            return self.onboarding.handle_account_updated(
                account_id=account_id,
                charges_enabled=bool(obj.get("charges_enabled")),
            )

        return False

    # -------------------------
    # Public entry
    # -------------------------
    def handle_event(self, event: Dict[str, Any]) -> str:
        """
        Returns "duplicate", "applied" or "ignored". Errors propagate after a
        rollback so Stripe redelivers the event.
        """
        event_id = event["id"]
        event_type = event["type"]

        if self.repo.is_processed(event_id):
            logger.info("stripe event %s (%s) already processed", event_id, event_type)
            return "duplicate"

        obj = (event.get("data") or {}).get("object") or {}
        try:
            try:
                applied = self._apply(event_type, obj)
            except IllegalTransitionError as e:
                # out-of-order delivery after a terminal state
                logger.warning("stripe event %s ignored: %s", event_id, e)
                applied = False
            self.repo.mark_processed(event_id=event_id, event_type=event_type)
            self.db.commit()
        except IntegrityError:
            # the same event delivered concurrently; the other request won
            self.db.rollback()
            logger.info("stripe event %s raced with a concurrent delivery", event_id)
            return "duplicate"
        except Exception:
            self.db.rollback()
            logger.exception("stripe event %s (%s) failed", event_id, event_type)
            raise

        result = "applied" if applied else "ignored"
        logger.info("stripe event %s (%s) %s", event_id, event_type, result)
        return result
