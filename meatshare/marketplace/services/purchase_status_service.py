# meatshare/marketplace/services/purchase_status_service.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from meatshare.auth.session import AuthSession
from meatshare.db.models import SharePurchase
from meatshare.domain.types import PurchaseStatus
from meatshare.farmer.repository.farm_repo import FarmRepository
from meatshare.integrations.payments.stripe.payment_gateway import PaymentGateway
from meatshare.marketplace.errors import (
    PurchaseAccessDeniedError,
    PurchaseNotFoundError,
)
from meatshare.marketplace.purchase_state import check_transition
from meatshare.marketplace.repository.purchase_repo import PurchaseRepository
from meatshare.marketplace.repository.share_repo import ShareRepository

logger = logging.getLogger(__name__)

SHARE_PURCHASE_TYPE = "share_purchase"
SOLD_OUT_NOTE = "sold out before payment confirmed; refunded"


class PurchaseStatusService:
    """
    Owns every status change of share_purchases.

    Responsibilities:
      - create the purchase row from a completed checkout session
      - pending -> confirmed together with the inventory decrement
      - confirmed -> completed / * -> cancelled

    Policy:
      - webhook entry points (record_*, handle_*) never commit; the webhook
        service commits them together with the processed-event marker
      - farm-owner entry points commit themselves
    """

    def __init__(
        self,
        db: Session,
        *,
        gateway: Optional[PaymentGateway] = None,
        repo: Optional[PurchaseRepository] = None,
        share_repo: Optional[ShareRepository] = None,
        farm_repo: Optional[FarmRepository] = None,
    ) -> None:
        self.db = db
        self.gateway = gateway or PaymentGateway()
        self.repo = repo or PurchaseRepository(db)
        self.share_repo = share_repo or ShareRepository(db)
        self.farm_repo = farm_repo or FarmRepository(db)

    # ==================================================
    # Transitions
    # ==================================================
    def _transition(
        self,
        purchase: SharePurchase,
        target: PurchaseStatus,
        *,
        note: Optional[str] = None,
    ) -> bool:
        if not check_transition(purchase.status, target):
            return False
        fields: Dict[str, Any] = {"status": target.value}
        if note:
            fields["notes"] = note
        self.repo.update_fields(purchase, **fields)
        logger.info("purchase %s -> %s", purchase.id, target.value)
        return True

    def confirm(self, purchase: SharePurchase) -> SharePurchase:
        """
        pending -> confirmed with a conditional decrement in the same
        transaction. If the share ran out the purchase is cancelled and the
        payment refunded instead.
        """
        if purchase.status != PurchaseStatus.PENDING.value:
            check_transition(purchase.status, PurchaseStatus.CONFIRMED)
            return purchase

        if purchase.share_id and self.share_repo.decrement_if_available(purchase.share_id):
            self._transition(purchase, PurchaseStatus.CONFIRMED)
            return purchase

        logger.warning(
            "share %s unavailable at confirmation; cancelling purchase %s",
            purchase.share_id,
            purchase.id,
        )
        self._transition(purchase, PurchaseStatus.CANCELLED, note=SOLD_OUT_NOTE)
        if purchase.stripe_payment_intent_id:
            self.gateway.refund_payment(
                payment_intent_id=purchase.stripe_payment_intent_id,
                reason="share_sold_out",
            )
        return purchase

    def _cancel(self, purchase: SharePurchase, *, note: Optional[str] = None) -> bool:
        was_confirmed = purchase.status == PurchaseStatus.CONFIRMED.value
        changed = self._transition(purchase, PurchaseStatus.CANCELLED, note=note)
        if changed and was_confirmed and purchase.share_id:
            self.share_repo.increment(purchase.share_id)
        return changed

    # ==================================================
    # Webhook entry points
    # ==================================================
    def record_checkout_completed(self, session_obj: Dict[str, Any]) -> Optional[SharePurchase]:
        meta = session_obj.get("metadata") or {}
        if meta.get("type") != SHARE_PURCHASE_TYPE:
            return None

        session_id = session_obj.get("id")
        purchase = self.repo.get_by_checkout_session(session_id) if session_id else None

        if purchase is None:
            share_id = meta.get("shareId")
            farm_id = meta.get("farmId")
            buyer_id = meta.get("buyerId")
            if not (share_id and farm_id and buyer_id):
                logger.warning("checkout session %s lacks purchase metadata", session_id)
                return None

            share = self.share_repo.get_by_id(share_id)
            amount_total = session_obj.get("amount_total")
            purchase = self.repo.insert(
                buyer_id=buyer_id,
                share_id=share.id if share else None,
                farm_id=farm_id,
                portion=share.portion if share else meta.get("portion", "whole"),
                price_paid=(amount_total / 100) if amount_total is not None else (share.price if share else 0.0),
                status=PurchaseStatus.PENDING.value,
                stripe_checkout_session_id=session_id,
                stripe_payment_intent_id=session_obj.get("payment_intent"),
            )
            logger.info("purchase %s recorded from session %s", purchase.id, session_id)
        elif not purchase.stripe_payment_intent_id and session_obj.get("payment_intent"):
            self.repo.update_fields(
                purchase, stripe_payment_intent_id=session_obj.get("payment_intent")
            )

        if session_obj.get("payment_status") in ("paid", "no_payment_required"):
            self.confirm(purchase)
        return purchase

    def handle_async_payment_failed(self, session_obj: Dict[str, Any]) -> Optional[SharePurchase]:
        session_id = session_obj.get("id")
        purchase = self.repo.get_by_checkout_session(session_id) if session_id else None
        if purchase is None:
            return None
        self._cancel(purchase, note="payment failed")
        return purchase

    def handle_charge_refunded(self, charge_obj: Dict[str, Any]) -> Optional[SharePurchase]:
        pi_id = charge_obj.get("payment_intent")
        if not isinstance(pi_id, str):
            return None
        purchase = self.repo.get_by_payment_intent(pi_id)
        if purchase is None:
            return None
        if purchase.status == PurchaseStatus.COMPLETED.value:
            logger.warning("refund on completed purchase %s left unchanged", purchase.id)
            return purchase
        self._cancel(purchase, note="refunded")
        return purchase

    # ==================================================
    # Farm owner entry points
    # ==================================================
    def _require_owned_purchase(self, session: AuthSession, purchase_id: str) -> SharePurchase:
        purchase = self.repo.get_by_id(purchase_id)
        if purchase is None:
            raise PurchaseNotFoundError("purchase not found")
        farm = self.farm_repo.get_by_id(purchase.farm_id)
        if farm is None or farm.owner_id != session.user_id:
            raise PurchaseAccessDeniedError("purchase belongs to another farm")
        return purchase

    def complete_purchase(self, session: AuthSession, purchase_id: str) -> SharePurchase:
        purchase = self._require_owned_purchase(session, purchase_id)
        self._transition(purchase, PurchaseStatus.COMPLETED)
        self.db.commit()
        return purchase

    def cancel_purchase(
        self, session: AuthSession, purchase_id: str, *, note: Optional[str] = None
    ) -> SharePurchase:
        purchase = self._require_owned_purchase(session, purchase_id)
        was_confirmed = purchase.status == PurchaseStatus.CONFIRMED.value
        changed = self._cancel(purchase, note=note or "cancelled by farm")
        if changed and was_confirmed and purchase.stripe_payment_intent_id:
            self.gateway.refund_payment(
                payment_intent_id=purchase.stripe_payment_intent_id,
                reason="cancelled_by_farm",
            )
        self.db.commit()
        return purchase
