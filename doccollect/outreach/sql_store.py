"""
SQL Outreach Stores

SQLAlchemy-backed implementations of the outreach store interfaces, for
deployments where attempt history, effectiveness and escalations must
survive restarts. Each store works on the caller's AsyncSession and only
flushes; committing is left to the session owner (see database.get_db).
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional
import logging

from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from doccollect.models.outreach import (
    OutreachAttempt,
    ChannelEffectivenessScore,
    OutreachEscalation,
)

from .history import (
    EffectivenessStore,
    EscalationEntry,
    EscalationStore,
    HistoryStore,
)
from .schemas import AttemptRecord, ChannelType
from .scoring import adjust_effectiveness

logger = logging.getLogger(__name__)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; everything stored is UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _to_record(row: OutreachAttempt) -> AttemptRecord:
    return AttemptRecord(
        channel=ChannelType(row.channel),
        response_time_hours=row.response_time_hours,
        sentiment=row.sentiment,
        success=row.success,
        engagement_score=row.engagement_score,
        follow_up_required=row.follow_up_required,
        error=row.error,
        attempted_at=_as_utc(row.attempted_at),
    )


def _to_entry(row: OutreachEscalation) -> EscalationEntry:
    return EscalationEntry(
        id=row.id,
        customer_id=row.customer_id,
        document_id=row.document_id,
        action=row.action,
        rule_priority=row.rule_priority,
        requires_approval=row.requires_approval,
        opened_at=_as_utc(row.opened_at),
        expires_at=_as_utc(row.expires_at),
        resolved_at=_as_utc(row.resolved_at),
    )


class SQLHistoryStore(HistoryStore):
    """Attempt log in the outreach_attempts table."""

    def __init__(self, db: AsyncSession, retention_limit: Optional[int] = None):
        self.db = db
        self.retention_limit = retention_limit

    async def append(self, customer_id: str, record: AttemptRecord) -> None:
        result = await self.db.execute(
            select(func.max(OutreachAttempt.sequence))
            .where(OutreachAttempt.customer_id == customer_id)
        )
        last_sequence = result.scalar_one_or_none() or 0
        sequence = last_sequence + 1

        self.db.add(OutreachAttempt(
            customer_id=customer_id,
            sequence=sequence,
            channel=record.channel.value,
            response_time_hours=record.response_time_hours,
            sentiment=record.sentiment,
            success=record.success,
            engagement_score=record.engagement_score,
            follow_up_required=record.follow_up_required,
            error=record.error,
            attempted_at=record.attempted_at,
        ))

        if self.retention_limit is not None and sequence > self.retention_limit:
            await self.db.execute(
                delete(OutreachAttempt)
                .where(OutreachAttempt.customer_id == customer_id)
                .where(OutreachAttempt.sequence <= sequence - self.retention_limit)
            )

        await self.db.flush()

    async def get(self, customer_id: str) -> List[AttemptRecord]:
        result = await self.db.execute(
            select(OutreachAttempt)
            .where(OutreachAttempt.customer_id == customer_id)
            .order_by(OutreachAttempt.sequence)
        )
        return [_to_record(row) for row in result.scalars().all()]

    async def get_by_channel(self, customer_id: str, channel: ChannelType) -> List[AttemptRecord]:
        result = await self.db.execute(
            select(OutreachAttempt)
            .where(OutreachAttempt.customer_id == customer_id)
            .where(OutreachAttempt.channel == channel.value)
            .order_by(OutreachAttempt.sequence)
        )
        return [_to_record(row) for row in result.scalars().all()]


class SQLEffectivenessStore(EffectivenessStore):
    """Effectiveness scores in the channel_effectiveness table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_all(self, customer_id: str) -> Dict[str, float]:
        result = await self.db.execute(
            select(ChannelEffectivenessScore)
            .where(ChannelEffectivenessScore.customer_id == customer_id)
        )
        return {row.channel: row.score for row in result.scalars().all()}

    async def adjust(self, customer_id: str, channel: ChannelType, delta: float) -> float:
        result = await self.db.execute(
            select(ChannelEffectivenessScore)
            .where(ChannelEffectivenessScore.customer_id == customer_id)
            .where(ChannelEffectivenessScore.channel == channel.value)
        )
        row = result.scalar_one_or_none()

        if row is None:
            row = ChannelEffectivenessScore(
                customer_id=customer_id,
                channel=channel.value,
                score=adjust_effectiveness(None, delta),
            )
            self.db.add(row)
        else:
            row.score = adjust_effectiveness(row.score, delta)

        await self.db.flush()
        return row.score


class SQLEscalationStore(EscalationStore):
    """Escalations in the outreach_escalations table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def open(self, entry: EscalationEntry) -> None:
        self.db.add(OutreachEscalation(
            id=entry.id,
            customer_id=entry.customer_id,
            document_id=entry.document_id,
            action=entry.action,
            rule_priority=entry.rule_priority,
            requires_approval=entry.requires_approval,
            opened_at=entry.opened_at,
            expires_at=entry.expires_at,
            resolved_at=entry.resolved_at,
        ))
        await self.db.flush()

    async def _unresolved(self, customer_id: str) -> List[OutreachEscalation]:
        result = await self.db.execute(
            select(OutreachEscalation)
            .where(OutreachEscalation.customer_id == customer_id)
            .where(OutreachEscalation.resolved_at.is_(None))
            .order_by(OutreachEscalation.opened_at)
        )
        return list(result.scalars().all())

    async def get_open(self, customer_id: str, now: Optional[datetime] = None) -> List[EscalationEntry]:
        now = now or datetime.now(timezone.utc)
        # Expiry is checked in Python: SQLite stores datetimes without offsets
        entries = [_to_entry(row) for row in await self._unresolved(customer_id)]
        return [e for e in entries if e.is_open(now)]

    async def resolve(self, customer_id: str, escalation_id: str, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        for row in await self._unresolved(customer_id):
            if row.id == escalation_id and _to_entry(row).is_open(now):
                row.resolved_at = now
                await self.db.flush()
                logger.info(f"Escalation {escalation_id} resolved for customer {customer_id}")
                return True
        return False
