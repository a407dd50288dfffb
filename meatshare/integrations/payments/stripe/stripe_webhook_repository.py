# meatshare/integrations/payments/stripe/stripe_webhook_repository.py
from __future__ import annotations

from sqlalchemy.orm import Session

from meatshare.db.models import ProcessedStripeEvent


class StripeWebhookRepository:
    """
    processed_stripe_events only: which Stripe event ids were applied.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def is_processed(self, event_id: str) -> bool:
        return self.db.get(ProcessedStripeEvent, event_id) is not None

    def mark_processed(self, *, event_id: str, event_type: str) -> None:
        self.db.add(ProcessedStripeEvent(event_id=event_id, event_type=event_type))
        self.db.flush()
