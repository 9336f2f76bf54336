"""
Bidding window policy.

Bids may only be placed during the opening hours (08:00-08:59 and
20:00-20:59 by default). Requirements may only be posted, edited or deleted
outside them. Decisions use the hour component only: 08:59:59 is inside the
morning window, 09:00:00 is not.
"""

from __future__ import annotations

from datetime import datetime, timedelta, tzinfo
from typing import Callable, Iterable
from zoneinfo import ZoneInfo

DEFAULT_OPENING_HOURS = (8, 20)
DEFAULT_TIMEZONE = "Asia/Kolkata"

Clock = Callable[[], datetime]


class TimeWindowPolicy:
    """Decides whether the bidding window is open at a given moment.

    All methods take ``now`` explicitly. Aware datetimes are converted to the
    policy time zone first; naive datetimes are taken as local wall-clock
    time.
    """

    def __init__(
        self,
        opening_hours: Iterable[int] = DEFAULT_OPENING_HOURS,
        timezone: str | tzinfo | None = None,
    ):
        hours = sorted(set(opening_hours))
        if not hours:
            raise ValueError("At least one opening hour is required")
        for hour in hours:
            if not 0 <= hour <= 23:
                raise ValueError(f"Opening hour out of range: {hour}")

        self.opening_hours: tuple[int, ...] = tuple(hours)
        if isinstance(timezone, str):
            timezone = ZoneInfo(timezone)
        self.timezone: tzinfo | None = timezone

    def localize(self, now: datetime) -> datetime:
        """Convert ``now`` to the policy's wall-clock time."""
        if self.timezone is not None and now.tzinfo is not None:
            return now.astimezone(self.timezone)
        return now

    def now(self) -> datetime:
        """Current wall-clock time in the policy time zone."""
        return datetime.now(self.timezone) if self.timezone is not None else datetime.now()

    def is_window_open(self, now: datetime) -> bool:
        """Check whether bidding is allowed at ``now``."""
        return self.localize(now).hour in self.opening_hours

    def time_to_next_window(self, now: datetime) -> timedelta:
        """Time until the next window opens.

        During an open window this is the time to the following window, not
        zero.
        """
        local = self.localize(now)
        midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)

        for hour in self.opening_hours:
            if hour > local.hour:
                return midnight.replace(hour=hour) - local

        tomorrow = midnight + timedelta(days=1)
        return tomorrow.replace(hour=self.opening_hours[0]) - local

    def time_to_window_close(self, now: datetime) -> timedelta | None:
        """Time left in the current window, or None when closed."""
        local = self.localize(now)
        if local.hour not in self.opening_hours:
            return None
        top_of_hour = local.replace(minute=0, second=0, microsecond=0)
        return top_of_hour + timedelta(hours=1) - local


def format_duration(delta: timedelta) -> str:
    """Render a countdown as ``"<hours>h <minutes>m"``."""
    total_minutes = max(0, int(delta.total_seconds() // 60))
    hours, minutes = divmod(total_minutes, 60)
    return f"{hours}h {minutes}m"
