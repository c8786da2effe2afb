import logging
import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional

from core.clock import Clock
from core.storage import MembershipStorage

logger = logging.getLogger("nls-api.membership")

SECONDS_PER_DAY = 24 * 60 * 60
DEFAULT_TRIAL_DAYS = 3


class MembershipStatus(str, Enum):
    NONE = "none"
    TRIAL = "trial"
    TRIAL_EXPIRED = "trial_expired"
    PREMIUM = "premium"
    PREMIUM_EXPIRED = "premium_expired"


@dataclass(frozen=True)
class Membership:
    """The persisted record. Days remaining is never stored."""

    status: MembershipStatus = MembershipStatus.NONE
    trial_started_at: Optional[datetime] = None
    premium_expires_at: Optional[datetime] = None

    def to_record(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "trial_started_at": _format_ts(self.trial_started_at),
            "premium_expires_at": _format_ts(self.premium_expires_at),
        }

    @classmethod
    def from_record(cls, raw: Dict[str, Any]) -> "Membership":
        return cls(
            status=MembershipStatus(raw.get("status", MembershipStatus.NONE.value)),
            trial_started_at=_parse_ts(raw.get("trial_started_at")),
            premium_expires_at=_parse_ts(raw.get("premium_expires_at")),
        )


@dataclass(frozen=True)
class MembershipState:
    """Effective membership at a point in time, as seen by the access policy."""

    status: MembershipStatus
    days_remaining: int
    expires_today: bool = False
    trial_started_at: Optional[datetime] = None
    premium_expires_at: Optional[datetime] = None


def _format_ts(value: Optional[datetime]) -> Optional[str]:
    return value.astimezone(timezone.utc).isoformat() if value else None


def _parse_ts(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    dt = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def days_left(expires_at: Optional[datetime], now: datetime) -> int:
    """Whole days until expiry, rounded up: 0 only once the expiry has passed."""
    if expires_at is None:
        return 0
    seconds = (expires_at - now).total_seconds()
    if seconds <= 0:
        return 0
    return math.ceil(seconds / SECONDS_PER_DAY)


def effective_status(membership: Membership, now: datetime, trial_length: timedelta) -> MembershipStatus:
    """Apply expiry rules to the stored status. Pure: status x timestamps x now."""
    status = membership.status

    if status == MembershipStatus.PREMIUM:
        if membership.premium_expires_at is None or now >= membership.premium_expires_at:
            return MembershipStatus.PREMIUM_EXPIRED
        return status

    if status == MembershipStatus.TRIAL:
        if membership.trial_started_at is None or now >= membership.trial_started_at + trial_length:
            return MembershipStatus.TRIAL_EXPIRED
        return status

    return status


class MembershipStore:
    """Owns the membership record: loads it, applies lazy expiry and persists transitions."""

    def __init__(self, storage: MembershipStorage, clock: Clock, trial_days: int = DEFAULT_TRIAL_DAYS):
        if trial_days <= 0:
            raise ValueError("trial_days must be positive")
        self.storage = storage
        self.clock = clock
        self.trial_length = timedelta(days=trial_days)

    def load(self) -> Membership:
        raw = self.storage.read()
        if raw is None:
            return Membership()
        try:
            return Membership.from_record(raw)
        except (ValueError, TypeError, AttributeError):
            logger.warning("membership_record_invalid", exc_info=True)
            return Membership()

    def _save(self, membership: Membership) -> None:
        self.storage.write(membership.to_record())

    def start_trial(self) -> MembershipState:
        membership = self.load()
        if membership.status != MembershipStatus.NONE:
            # one trial per install; repeated calls keep the original start
            return self.current_status()

        now = self.clock.now()
        membership = replace(membership, status=MembershipStatus.TRIAL, trial_started_at=now)
        self._save(membership)
        logger.info("membership_trial_started", extra={"membership_status": membership.status.value})
        return self.current_status()

    def activate_premium(self, duration_days: int) -> MembershipState:
        if isinstance(duration_days, bool) or not isinstance(duration_days, int) or duration_days <= 0:
            raise ValueError("duration_days must be a positive integer")

        membership = self.load()
        now = self.clock.now()
        expires_at = membership.premium_expires_at

        # renewals stack on top of the time still left
        if (
            membership.status == MembershipStatus.PREMIUM
            and expires_at is not None
            and expires_at > now
        ):
            base = expires_at
        else:
            base = now

        membership = replace(
            membership,
            status=MembershipStatus.PREMIUM,
            premium_expires_at=base + timedelta(days=duration_days),
        )
        self._save(membership)
        logger.info(
            "membership_premium_activated",
            extra={"membership_status": membership.status.value, "days_remaining": days_left(membership.premium_expires_at, now)},
        )
        return self.current_status()

    def current_status(self) -> MembershipState:
        membership = self.load()
        now = self.clock.now()

        status = effective_status(membership, now, self.trial_length)
        if status != membership.status:
            membership = replace(membership, status=status)
            self._save(membership)
            logger.info("membership_expired", extra={"membership_status": status.value})

        if status == MembershipStatus.TRIAL:
            expires_at = membership.trial_started_at + self.trial_length
        elif status == MembershipStatus.PREMIUM:
            expires_at = membership.premium_expires_at
        else:
            expires_at = None

        remaining = days_left(expires_at, now)
        expires_today = expires_at is not None and 0 < (expires_at - now).total_seconds() < SECONDS_PER_DAY

        return MembershipState(
            status=status,
            days_remaining=remaining,
            expires_today=expires_today,
            trial_started_at=membership.trial_started_at,
            premium_expires_at=membership.premium_expires_at,
        )
