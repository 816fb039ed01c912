"""
Outreach Schemas

Customer and document snapshots consumed by the orchestrator, plus the
records it produces. Customers and documents are owned elsewhere and are
passed in by value; the orchestrator never mutates them.
"""
from datetime import datetime, timezone
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


class ChannelType(str, Enum):
    """Communication channels the orchestrator can use."""
    EMAIL = "email"
    WHATSAPP = "whatsapp"
    PHONE = "phone"
    SMS = "sms"
    PORTAL = "portal"


class DocumentStatus(str, Enum):
    """Lifecycle of a document obligation."""
    PENDING = "pending"
    RECEIVED = "received"
    OVERDUE = "overdue"


# =============================================================================
# Customer
# =============================================================================

class CommunicationPreferences(BaseModel):
    """How and when the customer likes to be contacted."""
    preferred_channel: Optional[ChannelType] = None
    preferred_language: str = "en"
    preferred_time: Optional[str] = None  # "HH:MM" UTC
    do_not_disturb: bool = False  # no automated outreach at all
    quiet_hours_start: Optional[str] = None  # "HH:MM" UTC
    quiet_hours_end: Optional[str] = None

    @field_validator("preferred_time", "quiet_hours_start", "quiet_hours_end")
    @classmethod
    def _check_clock_time(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        try:
            datetime.strptime(value, "%H:%M")
        except ValueError:
            raise ValueError(f"Expected HH:MM, got {value!r}") from None
        return value


class Interaction(BaseModel):
    """A past interaction logged by the customer-management system."""
    date: datetime
    channel: ChannelType
    direction: Literal["sent", "received"]
    sentiment: float = Field(default=0.0, ge=-1.0, le=1.0)
    response_time: Optional[float] = None  # hours


class Customer(BaseModel):
    """Read-only customer snapshot."""
    id: str
    full_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    source: Optional[Literal["Hubspot", "Salesforce", "Zoho"]] = None
    language: str = "en"
    communication_preferences: Optional[CommunicationPreferences] = None
    interaction_history: List[Interaction] = []

    @property
    def preferred_language(self) -> str:
        if self.communication_preferences:
            return self.communication_preferences.preferred_language
        return self.language

    @property
    def do_not_disturb(self) -> bool:
        return bool(self.communication_preferences and self.communication_preferences.do_not_disturb)


# =============================================================================
# Document obligation
# =============================================================================

class DocumentAnalysis(BaseModel):
    """Analysis block attached to a document by the document subsystem."""
    sentiment_score: float = 0.0
    risk_level: Literal["Low", "Medium", "High"] = "Low"


class DocumentObligation(BaseModel):
    """Read-only snapshot of a document a customer owes."""
    id: str
    customer_id: str
    name: str
    type: str = "General"
    status: DocumentStatus = DocumentStatus.PENDING
    due_date: datetime
    reminder_count: int = Field(default=0, ge=0)
    ai_analysis: Optional[DocumentAnalysis] = None

    @property
    def due_date_utc(self) -> datetime:
        """Due date as an aware UTC datetime (naive values are taken as UTC)."""
        if self.due_date.tzinfo is None:
            return self.due_date.replace(tzinfo=timezone.utc)
        return self.due_date.astimezone(timezone.utc)


# =============================================================================
# Records produced by the orchestrator
# =============================================================================

@dataclass(frozen=True)
class AttemptRecord:
    """Outcome of a single send attempt. Immutable once created."""
    channel: ChannelType
    response_time_hours: float
    sentiment: float
    success: bool
    engagement_score: float
    follow_up_required: bool
    error: Optional[str] = None
    attempted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "channel": self.channel.value,
            "response_time_hours": self.response_time_hours,
            "sentiment": self.sentiment,
            "success": self.success,
            "engagement_score": self.engagement_score,
            "follow_up_required": self.follow_up_required,
            "error": self.error,
            "attempted_at": self.attempted_at.isoformat(),
        }


@dataclass(frozen=True)
class LastResponse:
    """The most recent attempt outcome, as seen by rules and scoring."""
    channel: ChannelType
    response_time_hours: float
    sentiment: float


@dataclass
class EscalationContext:
    """Snapshot evaluated by escalation rules and channel selection."""
    customer: Customer
    document: DocumentObligation
    attempts: int
    last_response: Optional[LastResponse]
    urgency_score: float  # normalized 0-1
    engagement_score: float  # 0-1
    channel_effectiveness: Dict[str, float]
    evaluated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "customer_id": self.customer.id,
            "document_id": self.document.id,
            "attempts": self.attempts,
            "last_response": {
                "channel": self.last_response.channel.value,
                "response_time_hours": self.last_response.response_time_hours,
                "sentiment": self.last_response.sentiment,
            } if self.last_response else None,
            "urgency_score": self.urgency_score,
            "engagement_score": self.engagement_score,
            "channel_effectiveness": dict(self.channel_effectiveness),
            "evaluated_at": self.evaluated_at.isoformat(),
        }


@dataclass
class ScheduledFollowUp:
    """Next attempt to hand to the scheduler after a failed delivery."""
    scheduled_time: datetime
    channel: ChannelType
    message: str
    wait_time_hours: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scheduled_time": self.scheduled_time.isoformat(),
            "channel": self.channel.value,
            "message": self.message,
            "wait_time_hours": round(self.wait_time_hours, 2),
        }
