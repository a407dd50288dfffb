# meatshare/memberships/membership_repo.py
from __future__ import annotations

from typing import Any, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from meatshare.db.models import Membership


class MembershipRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_by_subscription(self, subscription_id: str) -> Optional[Membership]:
        return self.db.execute(
            select(Membership)
            .where(Membership.stripe_subscription_id == subscription_id)
            .limit(1)
        ).scalar_one_or_none()

    def list_for_user(self, user_id: str) -> List[Membership]:
        return list(
            self.db.execute(
                select(Membership)
                .where(Membership.user_id == user_id)
                .order_by(Membership.starts_at.desc())
            ).scalars()
        )

    def insert(self, **fields: Any) -> Membership:
        membership = Membership(**fields)
        self.db.add(membership)
        self.db.flush()
        return membership
