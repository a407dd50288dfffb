# meatshare/waitlist/waitlist_repo.py
from __future__ import annotations

from typing import Any, List

from sqlalchemy import select
from sqlalchemy.orm import Session

from meatshare.db.models import BuyerWaitlistEntry, WaitlistEntry


class WaitlistRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    # -------------------------------------------------
    # waitlist (pre-launch)
    # -------------------------------------------------
    def insert_entry(self, **fields: Any) -> WaitlistEntry:
        entry = WaitlistEntry(**fields)
        self.db.add(entry)
        self.db.flush()
        return entry

    # -------------------------------------------------
    # buyer_waitlist
    # -------------------------------------------------
    def insert_buyer_entry(self, **fields: Any) -> BuyerWaitlistEntry:
        entry = BuyerWaitlistEntry(**fields)
        self.db.add(entry)
        self.db.flush()
        return entry

    def list_for_farm(self, farm_id: str) -> List[BuyerWaitlistEntry]:
        return list(
            self.db.execute(
                select(BuyerWaitlistEntry)
                .where(BuyerWaitlistEntry.farm_id == farm_id)
                .order_by(BuyerWaitlistEntry.created_at.desc())
            ).scalars()
        )
