# meatshare/memberships/membership_service.py
from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from meatshare.auth.session import AuthSession
from meatshare.config import get_settings
from meatshare.db.models import Membership
from meatshare.domain.types import MembershipType
from meatshare.memberships.membership_repo import MembershipRepository

logger = logging.getLogger(__name__)


class MembershipService:
    """
    Memberships are written only from a completed subscription checkout.
    One row per Stripe subscription id.
    """

    def __init__(self, db: Session, *, repo: Optional[MembershipRepository] = None) -> None:
        self.db = db
        self.repo = repo or MembershipRepository(db)

    def record_subscription_checkout(self, session_obj: Dict[str, Any]) -> Optional[Membership]:
        """Webhook entry point; the caller commits."""
        if session_obj.get("mode") != "subscription":
            return None

        meta = session_obj.get("metadata") or {}
        user_id = meta.get("userId")
        membership_type = meta.get("membershipType")
        if not user_id or membership_type not in {m.value for m in MembershipType}:
            logger.warning(
                "subscription session %s has no usable membership metadata",
                session_obj.get("id"),
            )
            return None

        subscription_id = session_obj.get("subscription")
        if isinstance(subscription_id, str):
            existing = self.repo.get_by_subscription(subscription_id)
            if existing is not None:
                return existing
        else:
            subscription_id = None

        now = datetime.now(UTC)
        amount_total = session_obj.get("amount_total") or 0
        membership = self.repo.insert(
            user_id=user_id,
            membership_type=membership_type,
            tier=membership_type,
            price_paid=amount_total / 100,
            stripe_subscription_id=subscription_id,
            starts_at=now,
            expires_at=now + timedelta(days=get_settings().membership_days),
            is_active=True,
        )
        logger.info("membership %s activated for user %s", membership.id, user_id)
        return membership

    def list_my_memberships(self, session: AuthSession) -> List[Membership]:
        return self.repo.list_for_user(session.user_id)
