# meatshare/marketplace/services/purchase_checkout_service.py

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from meatshare.auth.session import AuthSession
from meatshare.farmer.repository.farm_repo import FarmRepository
from meatshare.integrations.payments.stripe.payment_gateway import (
    CheckoutResult,
    PaymentGateway,
    SharePurchaseCheckoutRequest,
)
from meatshare.marketplace.errors import (
    FarmNotPayableError,
    InvalidShareError,
    PurchaseAccessDeniedError,
    ShareNotFoundError,
    ShareSoldOutError,
)
from meatshare.marketplace.repository.share_repo import ShareRepository

logger = logging.getLogger(__name__)

FARM_NOT_PAYABLE_MESSAGE = (
    "This farm hasn't set up payments yet. Please check back later."
)


class PurchaseCheckoutService:
    """
    Starts a share purchase (no-purchase -> checkout session).

    Policy:
      - no purchase row is written here; the webhook creates it once Stripe
        reports the session completed
      - price, portion and destination account are re-read from the store;
        the request body is only used to cross-check them
    """

    def __init__(
        self,
        db: Session,
        *,
        gateway: Optional[PaymentGateway] = None,
        share_repo: Optional[ShareRepository] = None,
        farm_repo: Optional[FarmRepository] = None,
    ) -> None:
        self.db = db
        self.gateway = gateway or PaymentGateway()
        self.share_repo = share_repo or ShareRepository(db)
        self.farm_repo = farm_repo or FarmRepository(db)

    def start_share_purchase(
        self,
        session: AuthSession,
        *,
        share_id: str,
        farm_id: str,
        buyer_id: str,
        buyer_email: Optional[str],
        farmer_account_id: Optional[str],
        origin_url: str,
        attempt: Optional[str] = None,
    ) -> CheckoutResult:
        if buyer_id != session.user_id:
            raise PurchaseAccessDeniedError("buyerId does not match the signed-in user")

        share = self.share_repo.get_by_id(share_id)
        if share is None:
            raise ShareNotFoundError("share not found")
        if share.farm_id != farm_id:
            raise InvalidShareError("share does not belong to this farm")
        if share.quantity_available <= 0:
            raise ShareSoldOutError("This share is sold out")

        farm = self.farm_repo.get_by_id(farm_id)
        if farm is None or not farm.stripe_account_id:
            raise FarmNotPayableError(FARM_NOT_PAYABLE_MESSAGE)
        if farmer_account_id and farmer_account_id != farm.stripe_account_id:
            raise FarmNotPayableError("connected account does not match this farm")

        result = self.gateway.create_share_purchase_checkout(
            SharePurchaseCheckoutRequest(
                share_id=share.id,
                farm_id=farm.id,
                farm_name=farm.name,
                buyer_id=buyer_id,
                buyer_email=buyer_email or session.email,
                animal_type=share.animal_type,
                portion=share.portion,
                price=share.price,
                weight_estimate=share.weight_estimate,
                farmer_account_id=farm.stripe_account_id,
                attempt=attempt,
                quantity_available=share.quantity_available,
            ),
            origin_url=origin_url,
        )
        logger.info(
            "checkout session %s started share=%s buyer=%s",
            result.session_id,
            share.id,
            buyer_id,
        )
        return result
