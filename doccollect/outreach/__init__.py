"""
Outreach Module

Follow-up orchestration for outstanding customer documents: channel
selection, escalation rules, delivery and effectiveness learning.
"""

from .channels import ChannelConfig, ChannelThresholds, CommunicationFlow, FLOWS, get_flow
from .delivery import DeliveryGateway, DeliveryReceipt, SimulatedGateway, ConsoleGateway
from .engine import OutreachOrchestrator, OrchestrationResult, OutreachStatus
from .escalation import EscalationHandler, EscalationOutcome
from .exceptions import (
    EmptyFlowError,
    OutreachConfigError,
    UnknownFlowError,
    UnknownEscalationActionError,
)
from .history import (
    HistoryStore,
    EffectivenessStore,
    EscalationStore,
    EscalationEntry,
    InMemoryHistoryStore,
    InMemoryEffectivenessStore,
    InMemoryEscalationStore,
)
from .messaging import MessageComposer, TemplateMessageComposer
from .rules import EscalationAction, EscalationRule, DEFAULT_ESCALATION_RULES, evaluate_rules
from .schemas import (
    AttemptRecord,
    ChannelType,
    Customer,
    DocumentObligation,
    DocumentStatus,
    EscalationContext,
    ScheduledFollowUp,
)

__all__ = [
    "ChannelConfig",
    "ChannelThresholds",
    "CommunicationFlow",
    "FLOWS",
    "get_flow",
    "DeliveryGateway",
    "DeliveryReceipt",
    "SimulatedGateway",
    "ConsoleGateway",
    "OutreachOrchestrator",
    "OrchestrationResult",
    "OutreachStatus",
    "EscalationHandler",
    "EscalationOutcome",
    "EmptyFlowError",
    "OutreachConfigError",
    "UnknownFlowError",
    "UnknownEscalationActionError",
    "HistoryStore",
    "EffectivenessStore",
    "EscalationStore",
    "EscalationEntry",
    "InMemoryHistoryStore",
    "InMemoryEffectivenessStore",
    "InMemoryEscalationStore",
    "MessageComposer",
    "TemplateMessageComposer",
    "EscalationAction",
    "EscalationRule",
    "DEFAULT_ESCALATION_RULES",
    "evaluate_rules",
    "AttemptRecord",
    "ChannelType",
    "Customer",
    "DocumentObligation",
    "DocumentStatus",
    "EscalationContext",
    "ScheduledFollowUp",
]
