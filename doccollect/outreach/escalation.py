"""
Escalation Handling

Dispatches a fired rule to its action handler and records the escalation
so later orchestration calls for the same customer are held back.

Escalations are not permanent: each entry expires after the rule's
cooldown (or the configured default) and can be resolved early once a
person has dealt with it.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional
import logging

from doccollect.models.base import generate_id

from .history import EscalationEntry, EscalationStore
from .rules import EscalationAction, EscalationRule, parse_action
from .schemas import EscalationContext

logger = logging.getLogger(__name__)


@dataclass
class EscalationOutcome:
    """Result of dispatching a fired escalation rule."""
    escalation_id: str
    action: EscalationAction
    status: str
    rule_priority: int
    requires_approval: bool
    expires_at: Optional[datetime]
    context: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "escalation_id": self.escalation_id,
            "action": self.action.value,
            "status": self.status,
            "rule_priority": self.rule_priority,
            "requires_approval": self.requires_approval,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "context": self.context,
        }


def build_escalation_id(action: EscalationAction, now: datetime) -> str:
    """`<action>_<epoch-ms>_<random>`; the suffix keeps same-millisecond ids apart."""
    return generate_id(f"{action.value}_{int(now.timestamp() * 1000)}")


class EscalationHandler:
    """
    Opens escalations and runs the action-specific handler.

    Actions without a dedicated handler fall through to the default one;
    tags outside the EscalationAction catalog are rejected.
    """

    def __init__(self, store: EscalationStore, default_cooldown_hours: Optional[float] = 72.0):
        self.store = store
        self.default_cooldown_hours = default_cooldown_hours
        self._handlers: Dict[EscalationAction, Callable[[EscalationContext], Awaitable[str]]] = {
            EscalationAction.ESCALATE_TO_MANAGER: self._handle_manager_escalation,
            EscalationAction.HUMAN_INTERVENTION: self._handle_human_intervention,
            EscalationAction.URGENT_ESCALATION: self._handle_urgent_escalation,
            EscalationAction.SWITCH_CHANNEL: self._handle_channel_switch,
        }

    def _expiry_for(self, rule: EscalationRule, now: datetime) -> Optional[datetime]:
        hours = rule.cooldown_hours if rule.cooldown_hours is not None else self.default_cooldown_hours
        if hours is None:
            return None
        return now + timedelta(hours=hours)

    async def dispatch(self, rule: EscalationRule, context: EscalationContext) -> EscalationOutcome:
        """Record a new escalation for the rule and run its handler."""
        action = parse_action(rule.action)
        handler = self._handlers.get(action, self._handle_default_escalation)

        now = context.evaluated_at
        entry = EscalationEntry(
            id=build_escalation_id(action, now),
            customer_id=context.customer.id,
            document_id=context.document.id,
            action=action.value,
            rule_priority=rule.priority,
            opened_at=now,
            expires_at=self._expiry_for(rule, now),
            requires_approval=rule.requires_approval,
        )
        await self.store.open(entry)

        status = await handler(context)

        logger.info(
            f"Customer {context.customer.id} escalated via {action.value} "
            f"(priority {rule.priority}): {rule.description or status}"
        )

        return EscalationOutcome(
            escalation_id=entry.id,
            action=action,
            status=status,
            rule_priority=rule.priority,
            requires_approval=rule.requires_approval,
            expires_at=entry.expires_at,
            context=context.to_dict(),
        )

    async def open_escalations(self, customer_id: str, now: Optional[datetime] = None) -> List[EscalationEntry]:
        return await self.store.get_open(customer_id, now)

    async def resolve(self, customer_id: str, escalation_id: str, now: Optional[datetime] = None) -> bool:
        return await self.store.resolve(customer_id, escalation_id, now)

    # =========================================================================
    # Action handlers
    # =========================================================================

    async def _handle_manager_escalation(self, context: EscalationContext) -> str:
        return "escalated_to_manager"

    async def _handle_human_intervention(self, context: EscalationContext) -> str:
        return "human_intervention_required"

    async def _handle_urgent_escalation(self, context: EscalationContext) -> str:
        return "urgent_escalation"

    async def _handle_channel_switch(self, context: EscalationContext) -> str:
        return "channel_switch_required"

    async def _handle_default_escalation(self, context: EscalationContext) -> str:
        return "default_escalation"
