"""
Outreach Orchestrator

Decides, for one customer and one outstanding document, whether to send a
follow-up (and on which channel) or to escalate instead.

Per call:
1. Open escalation for the customer → return "escalated", send nothing
2. Build the escalation context from history, urgency and effectiveness
3. First matching escalation rule → open an escalation, dispatch its action
4. Customer opted out of automated outreach → return "suppressed"
5. Inside the customer's quiet hours → plan the send for when they end
6. Otherwise pick the best channel, compose, deliver, record the attempt,
   nudge channel effectiveness and, on failure, schedule the next attempt

Calls for the same customer are serialized; calls for different customers
are independent.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional
import logging

from doccollect.config import settings

from .channels import ChannelConfig, CommunicationFlow, FLOWS, get_flow
from .delivery import DeliveryGateway, DeliveryReceipt, get_delivery_gateway
from .escalation import EscalationHandler, EscalationOutcome
from .history import (
    EffectivenessStore,
    EscalationEntry,
    EscalationStore,
    HistoryStore,
    InMemoryEffectivenessStore,
    InMemoryEscalationStore,
    InMemoryHistoryStore,
)
from .messaging import MessageComposer, TemplateMessageComposer
from .rules import evaluate_rules
from .schemas import (
    AttemptRecord,
    ChannelType,
    Customer,
    DocumentObligation,
    EscalationContext,
    LastResponse,
    ScheduledFollowUp,
)
from .scoring import (
    calculate_channel_score,
    calculate_engagement_score,
    calculate_urgency_score,
    calculate_wait_time,
    channel_effectiveness_bonus,
    clamp,
    preferred_channel_bonus,
    SCORE_PRECISION,
)
from .timing import end_of_quiet_hours, in_quiet_hours, plan_send_time

logger = logging.getLogger(__name__)


class OutreachStatus(str, Enum):
    """Top-level outcome of an orchestration call."""
    DELIVERED = "delivered"
    FAILED = "failed"
    ESCALATED = "escalated"
    DEFERRED = "deferred"
    SUPPRESSED = "suppressed"


@dataclass
class OrchestrationResult:
    """Structured result returned for every orchestration call."""
    status: OutreachStatus
    customer_id: str
    document_id: str
    channel: Optional[ChannelType] = None
    delivery: Optional[DeliveryReceipt] = None
    attempt: Optional[AttemptRecord] = None
    follow_up: Optional[ScheduledFollowUp] = None
    escalation: Optional[EscalationOutcome] = None
    open_escalations: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status == OutreachStatus.DELIVERED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "customer_id": self.customer_id,
            "document_id": self.document_id,
            "channel": self.channel.value if self.channel else None,
            "delivery": self.delivery.to_dict() if self.delivery else None,
            "attempt": self.attempt.to_dict() if self.attempt else None,
            "follow_up": self.follow_up.to_dict() if self.follow_up else None,
            "escalation": self.escalation.to_dict() if self.escalation else None,
            "open_escalations": list(self.open_escalations),
            "error": self.error,
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OutreachOrchestrator:
    """
    Follow-up orchestration state machine.

    All state lives in the injected stores; the orchestrator itself only
    holds the per-customer locks.
    """

    def __init__(
        self,
        history: Optional[HistoryStore] = None,
        effectiveness: Optional[EffectivenessStore] = None,
        escalations: Optional[EscalationStore] = None,
        gateway: Optional[DeliveryGateway] = None,
        composer: Optional[MessageComposer] = None,
        flows: Optional[Dict[str, CommunicationFlow]] = None,
        delivery_timeout_seconds: Optional[float] = None,
        default_cooldown_hours: Optional[float] = None,
        clock: Optional[Callable[[], datetime]] = None,
        locks: Optional[Dict[str, asyncio.Lock]] = None,
        commit: Optional[Callable[[], Awaitable[None]]] = None,
    ):
        """
        `locks` lets short-lived orchestrators (one per request) share the
        per-customer locks. `commit` runs while the customer's lock is still
        held, so the next call for that customer sees this call's writes.
        """
        self.history = history or InMemoryHistoryStore(
            retention_limit=settings.HISTORY_RETENTION_LIMIT,
        )
        self.effectiveness = effectiveness or InMemoryEffectivenessStore()
        self.gateway = gateway or get_delivery_gateway(
            console_mode=settings.DELIVERY_GATEWAY == "console",
            success_rate=settings.SIMULATED_SUCCESS_RATE,
            seed=settings.SIMULATED_DELIVERY_SEED,
        )
        self.composer = composer or TemplateMessageComposer()
        self.flows = flows if flows is not None else FLOWS
        self.delivery_timeout_seconds = (
            delivery_timeout_seconds
            if delivery_timeout_seconds is not None
            else settings.DELIVERY_TIMEOUT_SECONDS
        )
        self.escalation_handler = EscalationHandler(
            escalations or InMemoryEscalationStore(),
            default_cooldown_hours=(
                default_cooldown_hours
                if default_cooldown_hours is not None
                else settings.ESCALATION_DEFAULT_COOLDOWN_HOURS
            ),
        )
        self._clock = clock or _utcnow
        self._locks: Dict[str, asyncio.Lock] = locks if locks is not None else {}
        self._commit = commit

    def with_stores(
        self,
        history: HistoryStore,
        effectiveness: EffectivenessStore,
        escalations: EscalationStore,
        commit: Optional[Callable[[], Awaitable[None]]] = None,
    ) -> "OutreachOrchestrator":
        """Orchestrator on other stores sharing this one's collaborators and locks."""
        return OutreachOrchestrator(
            history=history,
            effectiveness=effectiveness,
            escalations=escalations,
            gateway=self.gateway,
            composer=self.composer,
            flows=self.flows,
            delivery_timeout_seconds=self.delivery_timeout_seconds,
            default_cooldown_hours=self.escalation_handler.default_cooldown_hours,
            clock=self._clock,
            locks=self._locks,
            commit=commit,
        )

    def _lock_for(self, customer_id: str) -> asyncio.Lock:
        lock = self._locks.get(customer_id)
        if lock is None:
            lock = self._locks[customer_id] = asyncio.Lock()
        return lock

    # =========================================================================
    # Public API
    # =========================================================================

    async def orchestrate(
        self,
        customer: Customer,
        document: DocumentObligation,
        flow_type: Optional[str] = None,
    ) -> OrchestrationResult:
        """
        Run one orchestration step for a customer's document.

        Raises UnknownFlowError for an unknown flow; every other outcome,
        including gateway faults, comes back as an OrchestrationResult.
        """
        flow = get_flow(flow_type or settings.DEFAULT_FLOW, self.flows)

        async with self._lock_for(customer.id):
            result = await self._run(customer, document, flow)
            if self._commit is not None:
                await self._commit()
            return result

    async def build_context(
        self,
        customer: Customer,
        document: DocumentObligation,
        now: Optional[datetime] = None,
    ) -> EscalationContext:
        """Snapshot everything rules and channel scoring look at."""
        now = now or self._clock()
        history = await self.history.get(customer.id)

        last_response = None
        if history:
            last = history[-1]
            last_response = LastResponse(
                channel=last.channel,
                response_time_hours=last.response_time_hours,
                sentiment=last.sentiment,
            )

        return EscalationContext(
            customer=customer,
            document=document,
            attempts=len(history),
            last_response=last_response,
            urgency_score=calculate_urgency_score(document, now) / 100,
            engagement_score=calculate_engagement_score(history),
            channel_effectiveness=await self.effectiveness.get_all(customer.id),
            evaluated_at=now,
        )

    async def select_channel(
        self,
        context: EscalationContext,
        flow: CommunicationFlow,
    ) -> ChannelConfig:
        """
        Highest-scoring channel for the context.

        Ties go to the channel listed first in the flow.
        """
        best: Optional[ChannelConfig] = None
        best_score = float("-inf")

        for channel in flow.channels:
            channel_history = await self.history.get_by_channel(context.customer.id, channel.type)
            score = calculate_channel_score(channel.thresholds, context, channel_history)
            score += channel_effectiveness_bonus(context.channel_effectiveness, channel.type)
            score += preferred_channel_bonus(context.customer, channel.type)
            # Effectiveness accumulates float noise; equal scores must still tie
            score = round(score, SCORE_PRECISION)

            if score > best_score:
                best, best_score = channel, score

        logger.debug(f"Selected {best.type.value} for customer {context.customer.id} (score {best_score:.2f})")
        return best

    async def schedule_follow_up(
        self,
        customer: Customer,
        document: DocumentObligation,
        flow: CommunicationFlow,
        failed_channel: ChannelConfig,
        context: EscalationContext,
    ) -> Optional[ScheduledFollowUp]:
        """
        Plan the next attempt after `failed_channel` did not get through.

        The scheduled time is the wait time from now, moved forward onto the
        customer's preferred hour and out of their quiet hours.
        """
        next_channel = flow.next_channel(failed_channel)
        wait_hours = calculate_wait_time(
            failed_channel.wait_time_hours,
            context.urgency_score,
            context.engagement_score,
        )

        earliest = context.evaluated_at + timedelta(hours=wait_hours)
        return await self._plan(
            customer, document, next_channel, context,
            plan_send_time(customer, earliest), wait_hours,
        )

    async def _plan(
        self,
        customer: Customer,
        document: DocumentObligation,
        channel: ChannelConfig,
        context: EscalationContext,
        at: datetime,
        wait_hours: float,
    ) -> Optional[ScheduledFollowUp]:
        try:
            message = await self.composer.compose(customer, document, channel, context)
        except Exception:
            logger.exception(f"Could not compose follow-up for customer {customer.id}")
            return None

        return ScheduledFollowUp(
            scheduled_time=at,
            channel=channel.type,
            message=message,
            wait_time_hours=wait_hours,
        )

    async def get_history(self, customer_id: str) -> List[AttemptRecord]:
        return await self.history.get(customer_id)

    async def get_open_escalations(self, customer_id: str) -> List[EscalationEntry]:
        return await self.escalation_handler.open_escalations(customer_id, self._clock())

    async def resolve_escalation(self, customer_id: str, escalation_id: str) -> bool:
        async with self._lock_for(customer_id):
            resolved = await self.escalation_handler.resolve(customer_id, escalation_id, self._clock())
            if resolved and self._commit is not None:
                await self._commit()
            return resolved

    # =========================================================================
    # State machine
    # =========================================================================

    async def _run(
        self,
        customer: Customer,
        document: DocumentObligation,
        flow: CommunicationFlow,
    ) -> OrchestrationResult:
        now = self._clock()

        open_escalations = await self.escalation_handler.open_escalations(customer.id, now)
        if open_escalations:
            logger.info(
                f"Customer {customer.id} has {len(open_escalations)} open escalation(s); skipping outreach"
            )
            return OrchestrationResult(
                status=OutreachStatus.ESCALATED,
                customer_id=customer.id,
                document_id=document.id,
                open_escalations=[e.id for e in open_escalations],
            )

        context = await self.build_context(customer, document, now)

        rule = evaluate_rules(context, flow.escalation_rules)
        if rule is not None:
            outcome = await self.escalation_handler.dispatch(rule, context)
            return OrchestrationResult(
                status=OutreachStatus.ESCALATED,
                customer_id=customer.id,
                document_id=document.id,
                escalation=outcome,
                open_escalations=[outcome.escalation_id],
            )

        if customer.do_not_disturb:
            logger.info(f"Customer {customer.id} opted out of automated outreach; nothing sent")
            return OrchestrationResult(
                status=OutreachStatus.SUPPRESSED,
                customer_id=customer.id,
                document_id=document.id,
            )

        channel = await self.select_channel(context, flow)

        if in_quiet_hours(customer, now):
            resume_at = end_of_quiet_hours(customer, now)
            wait_hours = (resume_at - now).total_seconds() / 3600
            follow_up = await self._plan(customer, document, channel, context, resume_at, wait_hours)
            logger.info(f"Customer {customer.id} is in quiet hours; send deferred to {resume_at.isoformat()}")
            return OrchestrationResult(
                status=OutreachStatus.DEFERRED,
                customer_id=customer.id,
                document_id=document.id,
                channel=channel.type,
                follow_up=follow_up,
            )

        return await self._send_and_record(customer, document, flow, channel, context)

    async def _deliver(
        self,
        customer: Customer,
        document: DocumentObligation,
        channel: ChannelConfig,
        context: EscalationContext,
    ) -> DeliveryReceipt:
        """Compose and send, turning collaborator faults into failed receipts."""
        try:
            message = await self.composer.compose(customer, document, channel, context)
            return await asyncio.wait_for(
                self.gateway.send(channel.type, message),
                timeout=self.delivery_timeout_seconds,
            )
        except asyncio.TimeoutError:
            error = f"Delivery via {channel.type.value} timed out after {self.delivery_timeout_seconds}s"
            logger.warning(f"{error} (customer {customer.id})")
        except Exception as e:
            error = f"{type(e).__name__}: {e}"
            logger.exception(f"Outreach via {channel.type.value} failed for customer {customer.id}")

        return DeliveryReceipt(success=False, response_time_hours=0.0, sentiment=0.0, error=error)

    async def _send_and_record(
        self,
        customer: Customer,
        document: DocumentObligation,
        flow: CommunicationFlow,
        channel: ChannelConfig,
        context: EscalationContext,
    ) -> OrchestrationResult:
        receipt = await self._deliver(customer, document, channel, context)

        attempt = AttemptRecord(
            channel=channel.type,
            response_time_hours=max(0.0, receipt.response_time_hours),
            sentiment=clamp(receipt.sentiment, -1.0, 1.0),
            success=receipt.success,
            engagement_score=context.engagement_score,
            follow_up_required=not receipt.success,
            error=receipt.error,
            attempted_at=context.evaluated_at,
        )
        await self.history.append(customer.id, attempt)

        if flow.auto_adjustment.enabled:
            rate = flow.auto_adjustment.learning_rate
            await self.effectiveness.adjust(customer.id, channel.type, rate if receipt.success else -rate)

        follow_up = None
        if not receipt.success:
            if context.attempts + 1 < flow.max_attempts:
                follow_up = await self.schedule_follow_up(customer, document, flow, channel, context)
            else:
                logger.info(
                    f"Customer {customer.id} reached {flow.max_attempts} attempts; no follow-up scheduled"
                )

        logger.info(
            f"Outreach to customer {customer.id} via {channel.type.value}: "
            f"{'delivered' if receipt.success else 'failed'}"
        )

        return OrchestrationResult(
            status=OutreachStatus.DELIVERED if receipt.success else OutreachStatus.FAILED,
            customer_id=customer.id,
            document_id=document.id,
            channel=channel.type,
            delivery=receipt,
            attempt=attempt,
            follow_up=follow_up,
            error=receipt.error,
        )


_orchestrator: Optional[OutreachOrchestrator] = None


def get_outreach_orchestrator() -> OutreachOrchestrator:
    """Process-wide orchestrator with in-memory stores and the configured gateway."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = OutreachOrchestrator()
    return _orchestrator
