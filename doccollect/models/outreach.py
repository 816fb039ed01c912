"""
Outreach Models

Database tables backing the SQL outreach stores: the per-customer attempt
log, learned channel effectiveness and open escalations.
"""

from sqlalchemy import Column, String, DateTime, Boolean, Integer, Float, Text, UniqueConstraint, Index
from sqlalchemy.sql import func

from doccollect.database import Base
from doccollect.models.base import generate_id


class OutreachAttempt(Base):
    """
    One delivery attempt made by the orchestrator.

    Rows are append-only. `sequence` preserves insertion order per customer.
    """
    __tablename__ = "outreach_attempts"

    id = Column(String, primary_key=True, default=lambda: generate_id("att"))
    customer_id = Column(String, nullable=False)
    sequence = Column(Integer, nullable=False)

    channel = Column(String, nullable=False)
    response_time_hours = Column(Float, nullable=False, default=0.0)
    sentiment = Column(Float, nullable=False, default=0.0)
    success = Column(Boolean, nullable=False, default=False)
    engagement_score = Column(Float, nullable=False, default=0.5)
    follow_up_required = Column(Boolean, nullable=False, default=False)
    error = Column(Text, nullable=True)

    attempted_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_outreach_attempts_customer_sequence", "customer_id", "sequence"),
    )


class ChannelEffectivenessScore(Base):
    """Learned success bias for one (customer, channel) pair."""
    __tablename__ = "channel_effectiveness"

    id = Column(String, primary_key=True, default=lambda: generate_id("eff"))
    customer_id = Column(String, nullable=False)
    channel = Column(String, nullable=False)
    score = Column(Float, nullable=False, default=0.5)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("customer_id", "channel", name="uq_channel_effectiveness_customer_channel"),
    )


class OutreachEscalation(Base):
    """
    An escalation opened when a rule fired.

    Open while `resolved_at` is null and `expires_at` is null or in the future.
    """
    __tablename__ = "outreach_escalations"

    id = Column(String, primary_key=True)
    customer_id = Column(String, nullable=False, index=True)
    document_id = Column(String, nullable=True)
    action = Column(String, nullable=False)
    rule_priority = Column(Integer, nullable=False)
    requires_approval = Column(Boolean, nullable=False, default=False)

    opened_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
