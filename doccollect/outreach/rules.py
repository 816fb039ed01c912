"""
Escalation Rules

Default escalation rules and their evaluation.

Rules are checked in ascending priority number (1 first). Only the first
matching rule fires per orchestration call:
1. Urgent document that has already been chased twice → manager
2. Negative last response after more than one attempt → human
3. Document due within 48 hours (or overdue) → urgent escalation
4. Low engagement after more than three attempts → switch channel
5. Every channel with recorded effectiveness is underperforming → alternative
"""

from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Callable, List, Optional, Sequence
import logging

from .exceptions import UnknownEscalationActionError
from .schemas import EscalationContext

logger = logging.getLogger(__name__)


class EscalationAction(str, Enum):
    """Actions a fired rule can dispatch."""
    ESCALATE_TO_MANAGER = "escalate_to_manager"
    HUMAN_INTERVENTION = "human_intervention"
    URGENT_ESCALATION = "urgent_escalation"
    SWITCH_CHANNEL = "switch_channel"
    TRY_ALTERNATIVE_CHANNEL = "try_alternative_channel"


def parse_action(action) -> EscalationAction:
    """Resolve an action tag, rejecting anything outside the catalog."""
    if isinstance(action, EscalationAction):
        return action
    try:
        return EscalationAction(action)
    except ValueError:
        raise UnknownEscalationActionError(str(action)) from None


@dataclass(frozen=True)
class EscalationRule:
    """A priority-ordered predicate over an escalation context."""
    action: EscalationAction
    priority: int
    condition: Callable[[EscalationContext], bool]
    description: str = ""
    cooldown_hours: Optional[float] = None
    requires_approval: bool = False
    active: bool = True

    def __post_init__(self):
        # Normalizes string tags and rejects unknown ones at definition time
        object.__setattr__(self, "action", parse_action(self.action))

    def matches(self, context: EscalationContext) -> bool:
        return bool(self.condition(context))


# =============================================================================
# Default rule conditions
# =============================================================================

URGENT_DUE_WINDOW = timedelta(hours=48)


def _urgent_and_chased(ctx: EscalationContext) -> bool:
    return ctx.attempts >= 2 and ctx.urgency_score > 0.8


def _negative_response(ctx: EscalationContext) -> bool:
    if ctx.last_response is None:
        return False
    return ctx.last_response.sentiment < -0.5 and ctx.attempts > 1


def _due_within_48_hours(ctx: EscalationContext) -> bool:
    return ctx.document.due_date_utc - ctx.evaluated_at < URGENT_DUE_WINDOW


def _disengaged(ctx: EscalationContext) -> bool:
    return ctx.engagement_score < 0.3 and ctx.attempts > 3


def _all_channels_underperforming(ctx: EscalationContext) -> bool:
    # No recorded effectiveness yet means nothing is underperforming
    if not ctx.channel_effectiveness:
        return False
    return max(ctx.channel_effectiveness.values()) < 0.4


DEFAULT_ESCALATION_RULES: List[EscalationRule] = [
    EscalationRule(
        action=EscalationAction.ESCALATE_TO_MANAGER,
        priority=1,
        condition=_urgent_and_chased,
        description="Urgent document chased at least twice",
        requires_approval=True,
    ),
    EscalationRule(
        action=EscalationAction.HUMAN_INTERVENTION,
        priority=2,
        condition=_negative_response,
        description="Customer responded negatively",
        cooldown_hours=24,
    ),
    EscalationRule(
        action=EscalationAction.URGENT_ESCALATION,
        priority=3,
        condition=_due_within_48_hours,
        description="Document due within 48 hours",
    ),
    EscalationRule(
        action=EscalationAction.SWITCH_CHANNEL,
        priority=4,
        condition=_disengaged,
        description="Customer disengaged after repeated attempts",
    ),
    EscalationRule(
        action=EscalationAction.TRY_ALTERNATIVE_CHANNEL,
        priority=5,
        condition=_all_channels_underperforming,
        description="All used channels are underperforming",
    ),
]


def evaluate_rules(
    context: EscalationContext,
    rules: Sequence[EscalationRule],
) -> Optional[EscalationRule]:
    """
    Return the first active rule that matches, in ascending priority order.

    Ties on priority keep their catalog order.
    """
    for rule in sorted(rules, key=lambda r: r.priority):
        if not rule.active:
            continue
        if rule.matches(context):
            logger.debug(
                f"Rule {rule.action.value} (priority {rule.priority}) matched "
                f"for customer {context.customer.id}"
            )
            return rule
    return None
