"""
Message Composition

Template-based message generation for outreach attempts.
The orchestrator only depends on the MessageComposer interface, so an
LLM-backed composer can replace the templates without touching the engine.

Template tones:
- casual: low urgency, first contact
- formal: moderate urgency or repeated follow-up
- urgent: high urgency
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional, Sequence
import logging

from .channels import ChannelConfig
from .schemas import Customer, DocumentObligation, EscalationContext

logger = logging.getLogger(__name__)


class MessageComposer(ABC):
    """Builds the text sent on a channel."""

    @abstractmethod
    async def compose(
        self,
        customer: Customer,
        document: DocumentObligation,
        channel: ChannelConfig,
        context: EscalationContext,
    ) -> str:
        pass


@dataclass(frozen=True)
class MessageTemplate:
    id: str
    tone: str  # "casual", "formal" or "urgent"
    content: str


# =============================================================================
# Templates
# =============================================================================

TEMPLATES: Dict[str, MessageTemplate] = {
    "friendly_reminder": MessageTemplate(
        id="friendly_reminder",
        tone="casual",
        content=(
            "Hi {customer_name}, I hope you're doing well! This is a gentle reminder "
            "about the {document_name}. Would you be able to provide this by {due_date}?"
        ),
    ),
    "follow_up": MessageTemplate(
        id="follow_up",
        tone="formal",
        content=(
            "Hi {customer_name}, I'm following up on the {document_name} for {company}, "
            "which is due on {due_date}. Please let me know if anything is holding it up."
        ),
    ),
    "urgent_reminder": MessageTemplate(
        id="urgent_reminder",
        tone="urgent",
        content=(
            "Hi {customer_name}, the {document_name} is still pending and is time-sensitive. "
            "Could you please submit it by {due_date}?"
        ),
    ),
    "quick_check": MessageTemplate(
        id="quick_check",
        tone="casual",
        content="Hi {customer_name}, quick check: how is the {document_name} coming along?",
    ),
    "final_notice": MessageTemplate(
        id="final_notice",
        tone="urgent",
        content=(
            "Dear {customer_name}, this is a final reminder regarding the {document_name}. "
            "We need this document by {due_date} to proceed further."
        ),
    ),
    "brief_reminder": MessageTemplate(
        id="brief_reminder",
        tone="formal",
        content="Reminder: {document_name} is due {due_date}. Reply here if you need help.",
    ),
    "portal_notification": MessageTemplate(
        id="portal_notification",
        tone="formal",
        content=(
            "{customer_name}, a document request is waiting in your portal: "
            "{document_name} (due {due_date})."
        ),
    ),
}

EMPATHY_PHRASES = (
    "I understand this might be a busy time for you. ",
    "We're here to help make this process easier. ",
    "I appreciate your attention to this matter. ",
)

URGENCY_PHRASES = (
    "This requires your immediate attention. ",
    "This is a time-sensitive matter. ",
    "Your quick response would be greatly appreciated. ",
)

LOW_SENTIMENT_THRESHOLD = 0.3
LOW_ENGAGEMENT_THRESHOLD = 0.5


def preferred_tone(urgency_score: float, attempts: int) -> str:
    """Tone to aim for given normalized urgency and how often we've chased."""
    if urgency_score > 0.8:
        return "urgent"
    if urgency_score > 0.5 or attempts > 0:
        return "formal"
    return "casual"


def select_template(
    template_ids: Sequence[str],
    urgency_score: float,
    attempts: int = 0,
) -> MessageTemplate:
    """
    Pick the channel template whose tone best fits the context.

    Falls back to the channel's first known template.
    """
    known = [TEMPLATES[t] for t in template_ids if t in TEMPLATES]
    if not known:
        raise KeyError(f"No known templates among {list(template_ids)}")

    tone = preferred_tone(urgency_score, attempts)
    for template in known:
        if template.tone == tone:
            return template
    return known[0]


def render_template(
    template: MessageTemplate,
    customer: Customer,
    document: DocumentObligation,
) -> str:
    variables = {
        "customer_name": customer.full_name,
        "document_name": document.name,
        "due_date": document.due_date_utc.strftime("%B %d, %Y"),
        "company": customer.company or "your account",
    }
    return template.content.format(**variables)


class TemplateMessageComposer(MessageComposer):
    """
    Default composer.

    Renders the best-fitting template for the channel, then softens it for
    customers whose last response was negative and sharpens it for
    customers who have stopped engaging.
    """

    async def compose(
        self,
        customer: Customer,
        document: DocumentObligation,
        channel: ChannelConfig,
        context: EscalationContext,
    ) -> str:
        template = select_template(channel.templates, context.urgency_score, context.attempts)
        message = render_template(template, customer, document)

        sentiment: Optional[float] = None
        if context.last_response is not None:
            sentiment = context.last_response.sentiment

        if sentiment is not None and sentiment < LOW_SENTIMENT_THRESHOLD:
            message = EMPATHY_PHRASES[context.attempts % len(EMPATHY_PHRASES)] + message

        if context.engagement_score < LOW_ENGAGEMENT_THRESHOLD:
            message = URGENCY_PHRASES[context.attempts % len(URGENCY_PHRASES)] + message

        logger.debug(
            f"Composed {template.id} for customer {customer.id} on {channel.type.value}"
        )
        return message
