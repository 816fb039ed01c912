"""
Channel Catalog

Static channel definitions grouped into named communication flows.
Catalog order matters: it breaks channel-selection ties and drives the
wrap-around successor when a failed channel has no fallback.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .exceptions import EmptyFlowError, UnknownFlowError
from .rules import DEFAULT_ESCALATION_RULES, EscalationRule
from .schemas import ChannelType


@dataclass(frozen=True)
class ChannelThresholds:
    """Values the channel score compares the context against."""
    urgency: float
    sentiment: float
    engagement: float


@dataclass(frozen=True)
class ChannelConfig:
    """Static definition of one outreach channel."""
    type: ChannelType
    priority: int
    wait_time_hours: float
    templates: Tuple[str, ...]
    thresholds: ChannelThresholds
    fallback_channel: Optional[ChannelType] = None


@dataclass(frozen=True)
class AutoAdjustment:
    """How strongly each attempt nudges channel effectiveness.

    When disabled, attempts are still recorded but effectiveness is frozen.
    """
    enabled: bool = True
    learning_rate: float = 0.1


@dataclass
class CommunicationFlow:
    """An ordered channel catalog plus the rules that govern it."""
    name: str
    channels: List[ChannelConfig]
    max_attempts: int = 5
    escalation_rules: List[EscalationRule] = field(default_factory=list)
    auto_adjustment: AutoAdjustment = field(default_factory=AutoAdjustment)

    def __post_init__(self):
        if not self.channels:
            raise EmptyFlowError(self.name)

    def get_channel(self, channel_type: ChannelType) -> Optional[ChannelConfig]:
        for channel in self.channels:
            if channel.type == channel_type:
                return channel
        return None

    def next_channel(self, current: ChannelConfig) -> ChannelConfig:
        """
        Channel to try after `current` failed.

        The configured fallback wins when it is part of this flow; otherwise
        the next catalog entry, wrapping to the first.
        """
        if current.fallback_channel:
            fallback = self.get_channel(current.fallback_channel)
            if fallback:
                return fallback

        types = [c.type for c in self.channels]
        index = types.index(current.type) + 1 if current.type in types else 0
        return self.channels[index % len(self.channels)]


DEFAULT_CHANNELS: List[ChannelConfig] = [
    ChannelConfig(
        type=ChannelType.EMAIL,
        priority=1,
        wait_time_hours=48,
        templates=("friendly_reminder", "follow_up"),
        thresholds=ChannelThresholds(urgency=0.5, sentiment=0.3, engagement=0.4),
    ),
    ChannelConfig(
        type=ChannelType.WHATSAPP,
        priority=2,
        wait_time_hours=24,
        templates=("urgent_reminder", "quick_check"),
        thresholds=ChannelThresholds(urgency=0.7, sentiment=0.2, engagement=0.6),
        fallback_channel=ChannelType.SMS,
    ),
    ChannelConfig(
        type=ChannelType.PHONE,
        priority=3,
        wait_time_hours=12,
        templates=("final_notice",),
        thresholds=ChannelThresholds(urgency=0.9, sentiment=0.1, engagement=0.8),
    ),
    ChannelConfig(
        type=ChannelType.SMS,
        priority=2,
        wait_time_hours=24,
        templates=("brief_reminder",),
        thresholds=ChannelThresholds(urgency=0.6, sentiment=0.3, engagement=0.5),
    ),
    ChannelConfig(
        type=ChannelType.PORTAL,
        priority=1,
        wait_time_hours=72,
        templates=("portal_notification",),
        thresholds=ChannelThresholds(urgency=0.4, sentiment=0.4, engagement=0.3),
    ),
]


FLOWS: Dict[str, CommunicationFlow] = {
    "default": CommunicationFlow(
        name="default",
        channels=DEFAULT_CHANNELS,
        max_attempts=5,
        escalation_rules=DEFAULT_ESCALATION_RULES,
        auto_adjustment=AutoAdjustment(enabled=True, learning_rate=0.1),
    ),
}


def get_flow(flow_type: str, flows: Optional[Dict[str, CommunicationFlow]] = None) -> CommunicationFlow:
    """Look up a flow by name. Unknown names are a configuration error."""
    flows = FLOWS if flows is None else flows
    flow = flows.get(flow_type)
    if flow is None:
        raise UnknownFlowError(flow_type)
    return flow
