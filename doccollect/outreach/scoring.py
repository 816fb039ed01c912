"""
Outreach Scoring

Pure scoring functions used by the orchestrator:
- Urgency = due-date bucket + document type bonus + reminder bonus (0-100)
- Engagement = (response_rate × 0.6) + (avg_sentiment × 0.4) over the last 5 attempts
- Channel score = threshold alignment + historical success + effectiveness bonus
  + preferred-channel bonus
- Wait time = max(base × (1 - urgency) × max(0.5, engagement), base × 0.25)

None of these functions touch the stores; callers pass history in.
"""

import math
from datetime import datetime, timezone
from typing import Dict, Optional, Sequence

from .channels import ChannelThresholds
from .schemas import AttemptRecord, ChannelType, Customer, DocumentObligation, EscalationContext


DEFAULT_EFFECTIVENESS = 0.5
DEFAULT_ENGAGEMENT = 0.5
DEFAULT_RESPONSE_RATE = 0.5
DEFAULT_RESPONSE_TIME_HOURS = 24.0
PREFERRED_CHANNEL_BONUS = 0.2

# Channel scores are compared at this many decimal places
SCORE_PRECISION = 9

ENGAGEMENT_WINDOW = 5
MAX_REMINDER_BONUS = 20

# Document type bonuses added on top of the due-date bucket
DOCUMENT_TYPE_BONUS = {
    "legal": 20,
    "financial": 15,
}


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def days_until_due(document: DocumentObligation, now: Optional[datetime] = None) -> int:
    """Whole days until the due date, floored (negative once overdue)."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    delta = document.due_date_utc - now
    return math.floor(delta.total_seconds() / 86400)


def calculate_urgency_score(
    document: DocumentObligation,
    now: Optional[datetime] = None,
) -> int:
    """
    Calculate how time-critical a document obligation is.

    Buckets: overdue=100, <2d=80, <5d=60, <10d=40, else 20.
    Legal documents add 20, financial documents add 15, and every prior
    reminder adds 5 (capped at 20).

    Returns:
        Urgency score 0-100
    """
    days = days_until_due(document, now)

    if days < 0:
        score = 100
    elif days < 2:
        score = 80
    elif days < 5:
        score = 60
    elif days < 10:
        score = 40
    else:
        score = 20

    score += DOCUMENT_TYPE_BONUS.get((document.type or "").lower(), 0)

    if document.reminder_count:
        score += min(MAX_REMINDER_BONUS, document.reminder_count * 5)

    return min(100, score)


def calculate_engagement_score(history: Sequence[AttemptRecord]) -> float:
    """
    Calculate how responsive a customer has been recently.

    Uses the last 5 attempts: (response_rate × 0.6) + (avg_sentiment × 0.4),
    clamped to 0-1. Returns 0.5 when there is no history yet.
    """
    if not history:
        return DEFAULT_ENGAGEMENT

    recent = list(history)[-ENGAGEMENT_WINDOW:]
    response_rate = sum(1 for r in recent if r.success) / len(recent)
    average_sentiment = sum(r.sentiment for r in recent) / len(recent)

    return clamp(response_rate * 0.6 + average_sentiment * 0.4)


def channel_effectiveness_bonus(
    effectiveness: Dict[str, float],
    channel: ChannelType,
) -> float:
    """Stored effectiveness for a channel, 0.5 if it has never been used."""
    return effectiveness.get(channel.value, DEFAULT_EFFECTIVENESS)


def preferred_channel_bonus(customer: Customer, channel: ChannelType) -> float:
    """Bonus for the channel the customer asked to be contacted on."""
    preferences = customer.communication_preferences
    if preferences and preferences.preferred_channel == channel:
        return PREFERRED_CHANNEL_BONUS
    return 0.0


def adjust_effectiveness(current: Optional[float], delta: float) -> float:
    """Apply an effectiveness nudge, starting from 0.5 and clamping to 0-1."""
    base = DEFAULT_EFFECTIVENESS if current is None else current
    return clamp(base + delta)


def calculate_success_rate(history: Sequence[AttemptRecord]) -> float:
    """Share of successful attempts; 0 when there are none."""
    if not history:
        return 0.0
    return sum(1 for r in history if r.success) / len(history)


def calculate_response_rate(history: Sequence[AttemptRecord]) -> float:
    if not history:
        return DEFAULT_RESPONSE_RATE
    return calculate_success_rate(history)


def calculate_average_response_time(history: Sequence[AttemptRecord]) -> float:
    if not history:
        return DEFAULT_RESPONSE_TIME_HOURS
    return sum(r.response_time_hours for r in history) / len(history)


def calculate_channel_score(
    thresholds: ChannelThresholds,
    context: EscalationContext,
    channel_history: Sequence[AttemptRecord],
) -> float:
    """
    Score how well a channel fits the current context (before the
    effectiveness bonus).

    +0.3 urgency at or above the channel's urgency threshold
    +0.2 last observed sentiment at or above the sentiment threshold
    +0.2 engagement at or above the engagement threshold
    +0.3 × historical success rate on this channel for this customer
    """
    score = 0.0

    if context.urgency_score >= thresholds.urgency:
        score += 0.3

    # Only counts once the customer has responded at least once
    if context.last_response is not None and context.last_response.sentiment >= thresholds.sentiment:
        score += 0.2

    if context.engagement_score >= thresholds.engagement:
        score += 0.2

    if channel_history:
        score += calculate_success_rate(channel_history) * 0.3

    return score


def calculate_wait_time(
    base_wait_hours: float,
    urgency_score: float,
    engagement_score: float,
) -> float:
    """
    Hours to wait before the next attempt.

    Higher urgency shortens the wait; the result never drops below a
    quarter of the channel's base wait time.
    """
    urgency_factor = max(0.0, 1 - urgency_score)
    engagement_factor = max(0.5, engagement_score)

    return max(
        base_wait_hours * urgency_factor * engagement_factor,
        base_wait_hours * 0.25,
    )
