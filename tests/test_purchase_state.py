# tests/test_purchase_state.py
import pytest

from meatshare.domain.types import PurchaseStatus as S
from meatshare.marketplace.purchase_state import (
    IllegalTransitionError,
    can_transition,
    check_transition,
)


@pytest.mark.parametrize(
    "current, target, allowed",
    [
        (S.PENDING, S.CONFIRMED, True),
        (S.PENDING, S.CANCELLED, True),
        (S.PENDING, S.COMPLETED, False),
        (S.CONFIRMED, S.COMPLETED, True),
        (S.CONFIRMED, S.CANCELLED, True),
        (S.CONFIRMED, S.PENDING, False),
        (S.COMPLETED, S.CANCELLED, False),
        (S.CANCELLED, S.CONFIRMED, False),
    ],
)
def test_can_transition(current, target, allowed):
    assert can_transition(current, target) is allowed


def test_same_state_is_a_noop():
    """a repeated event does not raise"""
    assert check_transition("confirmed", S.CONFIRMED) is False


def test_terminal_states_reject_changes():
    with pytest.raises(IllegalTransitionError) as exc_info:
        check_transition("completed", S.CANCELLED)
    assert exc_info.value.current is S.COMPLETED
    assert exc_info.value.target is S.CANCELLED


def test_unknown_status_is_rejected():
    with pytest.raises(ValueError):
        check_transition("refunded", S.CANCELLED)
