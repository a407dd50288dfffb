# meatshare/marketplace/repository/purchase_repo.py
from __future__ import annotations

from typing import Any, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from meatshare.db.models import Farm, SharePurchase


class PurchaseRepository:
    """
    share_purchases access only; status rules live in the services.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    # ==================================================
    # Fetch
    # ==================================================
    def get_by_id(self, purchase_id: str) -> Optional[SharePurchase]:
        return self.db.get(SharePurchase, purchase_id)

    def get_by_checkout_session(self, session_id: str) -> Optional[SharePurchase]:
        return self.db.execute(
            select(SharePurchase)
            .where(SharePurchase.stripe_checkout_session_id == session_id)
            .limit(1)
        ).scalar_one_or_none()

    def get_by_payment_intent(self, payment_intent_id: str) -> Optional[SharePurchase]:
        return self.db.execute(
            select(SharePurchase)
            .where(SharePurchase.stripe_payment_intent_id == payment_intent_id)
            .limit(1)
        ).scalar_one_or_none()

    def list_for_buyer(self, buyer_id: str) -> List[SharePurchase]:
        return list(
            self.db.execute(
                select(SharePurchase)
                .options(joinedload(SharePurchase.farm), joinedload(SharePurchase.share))
                .where(SharePurchase.buyer_id == buyer_id)
                .order_by(SharePurchase.created_at.desc())
            ).scalars()
        )

    def list_for_farm_owner(self, owner_id: str, *, limit: int = 250) -> List[SharePurchase]:
        # explicit ownership join; there is no row-level policy underneath
        return list(
            self.db.execute(
                select(SharePurchase)
                .join(Farm, Farm.id == SharePurchase.farm_id)
                .options(joinedload(SharePurchase.farm), joinedload(SharePurchase.share))
                .where(Farm.owner_id == owner_id)
                .order_by(SharePurchase.created_at.desc())
                .limit(limit)
            ).scalars()
        )

    # ==================================================
    # Command
    # ==================================================
    def insert(self, **fields: Any) -> SharePurchase:
        purchase = SharePurchase(**fields)
        self.db.add(purchase)
        self.db.flush()
        return purchase

    def update_fields(self, purchase: SharePurchase, **fields: Any) -> SharePurchase:
        for key, value in fields.items():
            setattr(purchase, key, value)
        self.db.flush()
        return purchase
