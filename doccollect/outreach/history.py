"""
Outreach Stores

Injected state used by the orchestrator:
- HistoryStore: append-only per-customer attempt log, oldest first
- EffectivenessStore: learned (customer, channel) effectiveness in [0, 1]
- EscalationStore: open escalations per customer, with expiry and resolution

The in-memory implementations here are the defaults. SQL-backed versions
live in sql_store.py and honour the same contracts.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

from .schemas import AttemptRecord, ChannelType
from .scoring import adjust_effectiveness

logger = logging.getLogger(__name__)


# =============================================================================
# History
# =============================================================================

class HistoryStore(ABC):
    """Per-customer attempt log."""

    @abstractmethod
    async def append(self, customer_id: str, record: AttemptRecord) -> None:
        """Append an attempt to the end of the customer's history."""
        pass

    @abstractmethod
    async def get(self, customer_id: str) -> List[AttemptRecord]:
        """Return the customer's attempts, oldest first."""
        pass

    async def get_by_channel(self, customer_id: str, channel: ChannelType) -> List[AttemptRecord]:
        """Return the customer's attempts on one channel, oldest first."""
        return [r for r in await self.get(customer_id) if r.channel == channel]


class InMemoryHistoryStore(HistoryStore):
    """
    History kept in process memory.

    When `retention_limit` is set only the most recent attempts are kept per
    customer; the attempt count seen by rules is the retained length.
    """

    def __init__(self, retention_limit: Optional[int] = None):
        if retention_limit is not None and retention_limit < 1:
            raise ValueError("retention_limit must be at least 1")
        self.retention_limit = retention_limit
        self._history: Dict[str, List[AttemptRecord]] = {}

    async def append(self, customer_id: str, record: AttemptRecord) -> None:
        history = self._history.setdefault(customer_id, [])
        history.append(record)
        if self.retention_limit is not None and len(history) > self.retention_limit:
            del history[: len(history) - self.retention_limit]

    async def get(self, customer_id: str) -> List[AttemptRecord]:
        return list(self._history.get(customer_id, []))


# =============================================================================
# Channel effectiveness
# =============================================================================

class EffectivenessStore(ABC):
    """Learned success bias per (customer, channel)."""

    @abstractmethod
    async def get_all(self, customer_id: str) -> Dict[str, float]:
        """Map of channel value -> effectiveness for channels used so far."""
        pass

    @abstractmethod
    async def adjust(self, customer_id: str, channel: ChannelType, delta: float) -> float:
        """Nudge a channel's effectiveness (0.5 if unseen), clamp, and return it."""
        pass


class InMemoryEffectivenessStore(EffectivenessStore):

    def __init__(self):
        self._scores: Dict[str, Dict[str, float]] = {}

    async def get_all(self, customer_id: str) -> Dict[str, float]:
        return dict(self._scores.get(customer_id, {}))

    async def adjust(self, customer_id: str, channel: ChannelType, delta: float) -> float:
        scores = self._scores.setdefault(customer_id, {})
        scores[channel.value] = adjust_effectiveness(scores.get(channel.value), delta)
        return scores[channel.value]


# =============================================================================
# Escalations
# =============================================================================

@dataclass(frozen=True)
class EscalationEntry:
    """An escalation opened for a customer when a rule fired."""
    id: str
    customer_id: str
    action: str
    rule_priority: int
    opened_at: datetime
    expires_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    document_id: Optional[str] = None
    requires_approval: bool = False

    def is_open(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        if self.resolved_at is not None:
            return False
        return self.expires_at is None or self.expires_at > now

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "document_id": self.document_id,
            "action": self.action,
            "rule_priority": self.rule_priority,
            "requires_approval": self.requires_approval,
            "opened_at": self.opened_at.isoformat(),
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
        }


class EscalationStore(ABC):
    """Open escalations per customer."""

    @abstractmethod
    async def open(self, entry: EscalationEntry) -> None:
        pass

    @abstractmethod
    async def get_open(self, customer_id: str, now: Optional[datetime] = None) -> List[EscalationEntry]:
        """Unresolved, unexpired escalations, oldest first."""
        pass

    @abstractmethod
    async def resolve(self, customer_id: str, escalation_id: str, now: Optional[datetime] = None) -> bool:
        """Close an escalation after human action. Returns False if it was not open."""
        pass


class InMemoryEscalationStore(EscalationStore):

    def __init__(self):
        self._entries: Dict[str, List[EscalationEntry]] = {}

    async def open(self, entry: EscalationEntry) -> None:
        self._entries.setdefault(entry.customer_id, []).append(entry)

    async def get_open(self, customer_id: str, now: Optional[datetime] = None) -> List[EscalationEntry]:
        now = now or datetime.now(timezone.utc)
        entries = self._entries.get(customer_id, [])
        # Drop closed entries so the per-customer list does not grow forever
        still_open = [e for e in entries if e.is_open(now)]
        if len(still_open) != len(entries):
            self._entries[customer_id] = still_open
        return list(still_open)

    async def resolve(self, customer_id: str, escalation_id: str, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        entries = self._entries.get(customer_id, [])
        for i, entry in enumerate(entries):
            if entry.id == escalation_id and entry.is_open(now):
                entries[i] = replace(entry, resolved_at=now)
                logger.info(f"Escalation {escalation_id} resolved for customer {customer_id}")
                return True
        return False
