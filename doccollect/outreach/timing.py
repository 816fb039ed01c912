"""
Send Timing

Moves a planned send time onto the customer's preferred hour and out of
their quiet hours.

Preferred hour, in order:
1. `communication_preferences.preferred_time`
2. The hour the customer most often replied at (last 5 replies)
3. None: keep the planned time

All clock times are UTC.
"""

from collections import Counter
from datetime import datetime, time, timedelta, timezone
from typing import Optional, Tuple

from .schemas import Customer

REPLY_WINDOW = 5


def parse_clock_time(value: str) -> time:
    return datetime.strptime(value, "%H:%M").time()


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def best_reply_hour(customer: Customer) -> Optional[int]:
    """Hour of day the customer replied at most often; earliest reply wins ties."""
    replies = [i for i in customer.interaction_history if i.direction == "received"]
    if not replies:
        return None

    hours = [_as_utc(i.date).hour for i in replies[-REPLY_WINDOW:]]
    counts = Counter(hours)
    best = max(counts.values())
    return next(h for h in hours if counts[h] == best)


def preferred_send_time(customer: Customer) -> Optional[time]:
    preferences = customer.communication_preferences
    if preferences and preferences.preferred_time:
        return parse_clock_time(preferences.preferred_time)

    hour = best_reply_hour(customer)
    if hour is not None:
        return time(hour=hour)
    return None


def quiet_hours(customer: Customer) -> Optional[Tuple[time, time]]:
    preferences = customer.communication_preferences
    if not preferences or not preferences.quiet_hours_start or not preferences.quiet_hours_end:
        return None
    start = parse_clock_time(preferences.quiet_hours_start)
    end = parse_clock_time(preferences.quiet_hours_end)
    if start == end:
        return None
    return start, end


def in_quiet_hours(customer: Customer, at: datetime) -> bool:
    window = quiet_hours(customer)
    if window is None:
        return False

    start, end = window
    now = _as_utc(at).time()
    if start < end:
        return start <= now < end
    # Window wraps midnight
    return now >= start or now < end


def _next_occurrence(clock: time, earliest: datetime) -> datetime:
    candidate = earliest.replace(hour=clock.hour, minute=clock.minute, second=0, microsecond=0)
    if candidate < earliest:
        candidate += timedelta(days=1)
    return candidate


def end_of_quiet_hours(customer: Customer, at: datetime) -> datetime:
    """First moment at or after `at` outside the customer's quiet hours."""
    at = _as_utc(at)
    if not in_quiet_hours(customer, at):
        return at
    _, end = quiet_hours(customer)
    return _next_occurrence(end, at)


def plan_send_time(customer: Customer, earliest: datetime) -> datetime:
    """
    Earliest acceptable send time at or after `earliest`.

    Snaps forward to the preferred hour when one is known, then past any
    quiet hours.
    """
    earliest = _as_utc(earliest)
    preferred = preferred_send_time(customer)
    candidate = _next_occurrence(preferred, earliest) if preferred is not None else earliest
    return end_of_quiet_hours(customer, candidate)
