# meatshare/marketplace/services/purchase_query_service.py
from __future__ import annotations

from typing import List, Optional

from sqlalchemy.orm import Session

from meatshare.auth.session import AuthSession
from meatshare.db.models import SharePurchase
from meatshare.marketplace.repository.purchase_repo import PurchaseRepository

FARMER_PURCHASES_LIMIT = 250


class PurchaseQueryService:
    """Dashboard reads. Both lists are scoped to the caller, newest first."""

    def __init__(self, db: Session, *, repo: Optional[PurchaseRepository] = None) -> None:
        self.repo = repo or PurchaseRepository(db)

    def list_buyer_purchases(self, session: AuthSession) -> List[SharePurchase]:
        return self.repo.list_for_buyer(session.user_id)

    def list_farmer_purchases(self, session: AuthSession) -> List[SharePurchase]:
        return self.repo.list_for_farm_owner(session.user_id, limit=FARMER_PURCHASES_LIMIT)
