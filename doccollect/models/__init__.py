"""
Consolidated database models.

Import models from here so they are registered on the shared Base.
"""
from doccollect.models.base import generate_id
from doccollect.models.outreach import (
    OutreachAttempt,
    ChannelEffectivenessScore,
    OutreachEscalation,
)

__all__ = [
    "generate_id",
    "OutreachAttempt",
    "ChannelEffectivenessScore",
    "OutreachEscalation",
]
