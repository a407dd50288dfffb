# meatshare/marketplace/purchase_state.py
from __future__ import annotations

from typing import Dict, FrozenSet

from meatshare.domain.types import PurchaseStatus

# pending -> confirmed -> completed, cancelled from pending / confirmed only
ALLOWED_TRANSITIONS: Dict[PurchaseStatus, FrozenSet[PurchaseStatus]] = {
    PurchaseStatus.PENDING: frozenset(
        {PurchaseStatus.CONFIRMED, PurchaseStatus.CANCELLED}
    ),
    PurchaseStatus.CONFIRMED: frozenset(
        {PurchaseStatus.COMPLETED, PurchaseStatus.CANCELLED}
    ),
    PurchaseStatus.COMPLETED: frozenset(),
    PurchaseStatus.CANCELLED: frozenset(),
}


class IllegalTransitionError(Exception):
    def __init__(self, current: PurchaseStatus, target: PurchaseStatus) -> None:
        super().__init__(f"cannot move purchase from {current.value} to {target.value}")
        self.current = current
        self.target = target


def can_transition(current: PurchaseStatus, target: PurchaseStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def check_transition(current: str, target: PurchaseStatus) -> bool:
    """
    Validate a status change.

    Returns False when the purchase is already in ``target`` (a replayed
    event is a no-op), True when the change is allowed, and raises
    IllegalTransitionError otherwise.
    """
    current_status = PurchaseStatus(current)
    if current_status == target:
        return False
    if not can_transition(current_status, target):
        raise IllegalTransitionError(current_status, target)
    return True
