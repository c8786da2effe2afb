"""Access gating over a membership snapshot. No side effects, no I/O."""

from enum import Enum

from core.membership import MembershipState, MembershipStatus

EXPIRED_STATUSES = (MembershipStatus.TRIAL_EXPIRED, MembershipStatus.PREMIUM_EXPIRED)


class Gate(str, Enum):
    PROCEED = "proceed"
    TRIAL = "trial"
    SUBSCRIPTION = "subscription"


def can_access(m: MembershipState) -> bool:
    # an active trial counts on its last partial day too
    if m.status == MembershipStatus.TRIAL:
        return True
    if m.status == MembershipStatus.PREMIUM:
        return m.days_remaining > 0
    return False


def needs_trial_modal(m: MembershipState) -> bool:
    return m.status == MembershipStatus.NONE


def needs_subscription_modal(m: MembershipState) -> bool:
    return m.status in EXPIRED_STATUSES


def gate_for(m: MembershipState) -> Gate:
    if needs_trial_modal(m):
        return Gate.TRIAL
    if can_access(m):
        return Gate.PROCEED
    return Gate.SUBSCRIPTION
