"""Shared test fixtures and configuration for outreach tests."""
import asyncio
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

import pytest

from doccollect.outreach.delivery import DeliveryGateway, DeliveryReceipt
from doccollect.outreach.engine import OutreachOrchestrator
from doccollect.outreach.history import (
    InMemoryEffectivenessStore,
    InMemoryEscalationStore,
    InMemoryHistoryStore,
)
from doccollect.outreach.schemas import (
    ChannelType,
    CommunicationPreferences,
    Customer,
    DocumentObligation,
    EscalationContext,
    LastResponse,
)


NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Clock the tests can move forward by hand."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, hours: float) -> None:
        self.now = self.now + timedelta(hours=hours)


class FakeGateway(DeliveryGateway):
    """
    Deterministic gateway that records every send.

    `outcomes` is consumed in order; once empty, `default_success` is used.
    """

    def __init__(
        self,
        outcomes: Optional[List[bool]] = None,
        default_success: bool = True,
        response_time_hours: float = 2.0,
        success_sentiment: float = 0.5,
        failure_sentiment: float = 0.0,
        latency_seconds: float = 0.0,
    ):
        self.outcomes = list(outcomes or [])
        self.default_success = default_success
        self.response_time_hours = response_time_hours
        self.success_sentiment = success_sentiment
        self.failure_sentiment = failure_sentiment
        self.latency_seconds = latency_seconds
        self.calls: List[Tuple[ChannelType, str]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def send(self, channel: ChannelType, message: str) -> DeliveryReceipt:
        self.calls.append((channel, message))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.latency_seconds:
                await asyncio.sleep(self.latency_seconds)
        finally:
            self.in_flight -= 1

        success = self.outcomes.pop(0) if self.outcomes else self.default_success
        return DeliveryReceipt(
            success=success,
            response_time_hours=self.response_time_hours,
            sentiment=self.success_sentiment if success else self.failure_sentiment,
        )


def make_customer(customer_id: str = "cust-001", **overrides) -> Customer:
    data = {
        "id": customer_id,
        "full_name": "Ada Lovelace",
        "email": "ada@example.com",
        "phone": "+44 20 7946 0000",
        "company": "Analytical Engines Ltd",
        "source": "Hubspot",
        "communication_preferences": CommunicationPreferences(preferred_language="en"),
    }
    data.update(overrides)
    return Customer(**data)


def make_document(
    due_in: timedelta = timedelta(days=20),
    customer_id: str = "cust-001",
    now: datetime = NOW,
    **overrides,
) -> DocumentObligation:
    data = {
        "id": "doc-001",
        "customer_id": customer_id,
        "name": "Proof of Address",
        "type": "General",
        "due_date": now + due_in,
    }
    data.update(overrides)
    return DocumentObligation(**data)


def make_context(
    customer: Optional[Customer] = None,
    document: Optional[DocumentObligation] = None,
    attempts: int = 0,
    last_sentiment: Optional[float] = None,
    urgency_score: float = 0.2,
    engagement_score: float = 0.5,
    channel_effectiveness: Optional[dict] = None,
    now: datetime = NOW,
) -> EscalationContext:
    last_response = None
    if last_sentiment is not None:
        last_response = LastResponse(
            channel=ChannelType.EMAIL,
            response_time_hours=4.0,
            sentiment=last_sentiment,
        )
    return EscalationContext(
        customer=customer or make_customer(),
        document=document or make_document(),
        attempts=attempts,
        last_response=last_response,
        urgency_score=urgency_score,
        engagement_score=engagement_score,
        channel_effectiveness=channel_effectiveness or {},
        evaluated_at=now,
    )


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def customer():
    return make_customer()


@pytest.fixture
def document():
    """Pending document due in 20 days: low urgency, no rule fires."""
    return make_document()


@pytest.fixture
def orchestrator(gateway, clock):
    """Orchestrator with isolated in-memory stores and a fake gateway."""
    return OutreachOrchestrator(
        history=InMemoryHistoryStore(),
        effectiveness=InMemoryEffectivenessStore(),
        escalations=InMemoryEscalationStore(),
        gateway=gateway,
        delivery_timeout_seconds=5.0,
        default_cooldown_hours=72.0,
        clock=clock,
    )
