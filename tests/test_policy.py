import pytest

from core.membership import MembershipState, MembershipStatus
from core.policy import Gate, can_access, gate_for, needs_subscription_modal, needs_trial_modal


@pytest.mark.parametrize(
    "status, days, expected_gate",
    [
        (MembershipStatus.NONE, 0, Gate.TRIAL),
        (MembershipStatus.TRIAL, 3, Gate.PROCEED),
        (MembershipStatus.TRIAL, 0, Gate.PROCEED),
        (MembershipStatus.TRIAL_EXPIRED, 0, Gate.SUBSCRIPTION),
        (MembershipStatus.PREMIUM, 120, Gate.PROCEED),
        (MembershipStatus.PREMIUM_EXPIRED, 0, Gate.SUBSCRIPTION),
    ],
)
def test_exactly_one_gate_per_status(status, days, expected_gate):
    m = MembershipState(status=status, days_remaining=days)

    assert gate_for(m) == expected_gate
    flags = [can_access(m), needs_trial_modal(m), needs_subscription_modal(m)]
    assert flags.count(True) == 1


def test_premium_without_days_left_is_denied():
    m = MembershipState(status=MembershipStatus.PREMIUM, days_remaining=0)
    assert can_access(m) is False
