# meatshare/farmer/repository/farm_repo.py
from __future__ import annotations

from typing import Any, List, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from meatshare.db.models import Farm


class FarmRepository:
    """
    farms table access only. No business decisions here.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    # -------------------------------------------------
    # Query
    # -------------------------------------------------
    def get_by_id(self, farm_id: str) -> Optional[Farm]:
        return self.db.get(Farm, farm_id)

    def get_by_owner(self, owner_id: str) -> Optional[Farm]:
        return self.db.execute(
            select(Farm).where(Farm.owner_id == owner_id).limit(1)
        ).scalar_one_or_none()

    def get_by_stripe_account(self, account_id: str) -> Optional[Farm]:
        return self.db.execute(
            select(Farm).where(Farm.stripe_account_id == account_id).limit(1)
        ).scalar_one_or_none()

    def list_publishable(self) -> List[Farm]:
        """Active farms whose Stripe onboarding finished, best rated first."""
        return list(
            self.db.execute(
                select(Farm)
                .where(
                    Farm.is_active.is_(True),
                    Farm.stripe_onboarding_complete.is_(True),
                )
                .order_by(Farm.rating.desc().nulls_last(), Farm.created_at)
            ).scalars()
        )

    # -------------------------------------------------
    # Command
    # -------------------------------------------------
    def insert(self, **fields: Any) -> Farm:
        farm = Farm(**fields)
        self.db.add(farm)
        self.db.flush()
        return farm

    def update_fields(self, farm: Farm, **fields: Any) -> Farm:
        for key, value in fields.items():
            setattr(farm, key, value)
        self.db.flush()
        return farm

    def mark_onboarding_complete(self, farm_id: str) -> bool:
        """
        Set stripe_onboarding_complete once. Returns True only for the call
        that actually flipped the flag.
        """
        result = self.db.execute(
            update(Farm)
            .where(
                Farm.id == farm_id,
                or_(
                    Farm.stripe_onboarding_complete.is_(None),
                    Farm.stripe_onboarding_complete.is_(False),
                ),
            )
            .values(stripe_onboarding_complete=True)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount == 1
