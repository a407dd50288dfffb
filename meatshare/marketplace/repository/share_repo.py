# meatshare/marketplace/repository/share_repo.py
from __future__ import annotations

from typing import Any, Iterable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from meatshare.db.models import AvailableShare, SharePurchase


class ShareRepository:
    """
    available_shares access. Quantity changes are single conditional
    UPDATE statements so concurrent confirmations cannot oversell.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    # -------------------------
    # Fetch
    # -------------------------
    def get_by_id(self, share_id: str) -> Optional[AvailableShare]:
        return self.db.get(AvailableShare, share_id)

    def list_for_farm(self, farm_id: str) -> List[AvailableShare]:
        return list(
            self.db.execute(
                select(AvailableShare)
                .where(AvailableShare.farm_id == farm_id)
                .order_by(AvailableShare.created_at)
            ).scalars()
        )

    def list_in_stock(
        self,
        farm_ids: Iterable[str],
        *,
        animal_type: Optional[str] = None,
        portion: Optional[str] = None,
    ) -> List[AvailableShare]:
        ids = list(farm_ids)
        if not ids:
            return []
        stmt = select(AvailableShare).where(
            AvailableShare.farm_id.in_(ids),
            AvailableShare.quantity_available > 0,
        )
        if animal_type:
            stmt = stmt.where(AvailableShare.animal_type == animal_type)
        if portion:
            stmt = stmt.where(AvailableShare.portion == portion)
        return list(self.db.execute(stmt.order_by(AvailableShare.price)).scalars())

    # -------------------------
    # Command
    # -------------------------
    def insert(self, **fields: Any) -> AvailableShare:
        share = AvailableShare(**fields)
        self.db.add(share)
        self.db.flush()
        return share

    def delete(self, share: AvailableShare) -> None:
        # purchases outlive the listing; SQLite does not enforce SET NULL by default
        self.db.execute(
            update(SharePurchase)
            .where(SharePurchase.share_id == share.id)
            .values(share_id=None)
            .execution_options(synchronize_session="fetch")
        )
        self.db.delete(share)
        self.db.flush()

    def decrement_if_available(self, share_id: str) -> bool:
        result = self.db.execute(
            update(AvailableShare)
            .where(
                AvailableShare.id == share_id,
                AvailableShare.quantity_available > 0,
            )
            .values(quantity_available=AvailableShare.quantity_available - 1)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount == 1

    def increment(self, share_id: str) -> bool:
        result = self.db.execute(
            update(AvailableShare)
            .where(AvailableShare.id == share_id)
            .values(quantity_available=AvailableShare.quantity_available + 1)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount == 1
