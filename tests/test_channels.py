"""
Tests for the channel catalog and channel selection.
"""

import pytest

from doccollect.outreach.channels import (
    ChannelConfig,
    ChannelThresholds,
    CommunicationFlow,
    DEFAULT_CHANNELS,
    FLOWS,
    get_flow,
)
from doccollect.outreach.exceptions import EmptyFlowError, OutreachConfigError, UnknownFlowError
from doccollect.outreach.schemas import AttemptRecord, ChannelType, CommunicationPreferences

from tests.conftest import make_context, make_customer, make_document


def channel(channel_type, fallback=None, threshold=0.5):
    return ChannelConfig(
        type=channel_type,
        priority=1,
        wait_time_hours=24,
        templates=("brief_reminder",),
        thresholds=ChannelThresholds(urgency=threshold, sentiment=threshold, engagement=threshold),
        fallback_channel=fallback,
    )


# =============================================================================
# Catalog
# =============================================================================

class TestChannelCatalog:

    def test_default_flow_lists_all_channels_in_order(self):
        flow = get_flow("default")
        assert [c.type for c in flow.channels] == [
            ChannelType.EMAIL,
            ChannelType.WHATSAPP,
            ChannelType.PHONE,
            ChannelType.SMS,
            ChannelType.PORTAL,
        ]
        assert flow.max_attempts == 5
        assert flow.auto_adjustment.learning_rate == 0.1

    def test_unknown_flow_is_a_config_error(self):
        with pytest.raises(UnknownFlowError) as exc_info:
            get_flow("does-not-exist")
        assert isinstance(exc_info.value, OutreachConfigError)
        assert "does-not-exist" in str(exc_info.value)

    def test_custom_flow_registry(self):
        flows = {"legal": CommunicationFlow(name="legal", channels=[channel(ChannelType.PHONE)])}
        assert get_flow("legal", flows).name == "legal"
        with pytest.raises(UnknownFlowError):
            get_flow("default", flows)

    def test_flow_without_channels_is_a_config_error(self):
        with pytest.raises(EmptyFlowError) as exc_info:
            CommunicationFlow(name="empty", channels=[])
        assert isinstance(exc_info.value, OutreachConfigError)


class TestNextChannel:
    """Tests for fallback and wrap-around after a failure."""

    def test_fallback_wins_over_catalog_successor(self):
        flow = CommunicationFlow(name="t", channels=[
            channel(ChannelType.EMAIL, fallback=ChannelType.SMS),
            channel(ChannelType.WHATSAPP),
            channel(ChannelType.SMS),
        ])
        assert flow.next_channel(flow.channels[0]).type == ChannelType.SMS

    def test_last_channel_without_fallback_wraps_to_first(self):
        flow = CommunicationFlow(name="t", channels=[
            channel(ChannelType.EMAIL),
            channel(ChannelType.WHATSAPP),
            channel(ChannelType.PORTAL),
        ])
        assert flow.next_channel(flow.channels[-1]).type == ChannelType.EMAIL

    def test_fallback_outside_flow_uses_successor(self):
        flow = CommunicationFlow(name="t", channels=[
            channel(ChannelType.WHATSAPP, fallback=ChannelType.SMS),
            channel(ChannelType.EMAIL),
        ])
        assert flow.next_channel(flow.channels[0]).type == ChannelType.EMAIL

    def test_default_whatsapp_falls_back_to_sms(self):
        flow = FLOWS["default"]
        whatsapp = flow.get_channel(ChannelType.WHATSAPP)
        assert flow.next_channel(whatsapp).type == ChannelType.SMS


# =============================================================================
# Selection
# =============================================================================

class TestChannelSelection:
    """Tests for greedy channel ranking."""

    @pytest.mark.asyncio
    async def test_cold_start_picks_email(self, orchestrator):
        """Email, SMS and portal tie at 0.7; email is listed first."""
        context = make_context(urgency_score=0.2, engagement_score=0.5)
        selected = await orchestrator.select_channel(context, FLOWS["default"])
        assert selected.type == ChannelType.EMAIL

    @pytest.mark.asyncio
    async def test_selection_is_deterministic(self, orchestrator):
        context = make_context(
            urgency_score=0.75,
            engagement_score=0.65,
            last_sentiment=0.25,
            channel_effectiveness={"sms": 0.7, "email": 0.4},
        )
        first = await orchestrator.select_channel(context, FLOWS["default"])
        second = await orchestrator.select_channel(context, FLOWS["default"])
        assert first == second

    @pytest.mark.asyncio
    async def test_high_urgency_and_engagement_favour_phone(self, orchestrator):
        context = make_context(
            urgency_score=0.95,
            engagement_score=0.9,
            last_sentiment=0.5,
            channel_effectiveness={"phone": 0.6},
        )
        selected = await orchestrator.select_channel(context, FLOWS["default"])
        assert selected.type == ChannelType.PHONE

    @pytest.mark.asyncio
    async def test_effectiveness_bonus_changes_ranking(self, orchestrator):
        context = make_context(channel_effectiveness={"email": 0.3, "portal": 0.9})
        selected = await orchestrator.select_channel(context, FLOWS["default"])
        assert selected.type == ChannelType.PORTAL

    @pytest.mark.asyncio
    async def test_success_history_adds_to_score(self, orchestrator, customer):
        for _ in range(3):
            await orchestrator.history.append(customer.id, AttemptRecord(
                channel=ChannelType.SMS,
                response_time_hours=1.0,
                sentiment=0.0,
                success=True,
                engagement_score=0.5,
                follow_up_required=False,
            ))
        # email 0.7, sms 0.7 + 0.3 success rate
        context = make_context(customer=customer, urgency_score=0.2, engagement_score=0.5)
        selected = await orchestrator.select_channel(context, FLOWS["default"])
        assert selected.type == ChannelType.SMS

    @pytest.mark.asyncio
    async def test_preferred_channel_gets_bonus(self, orchestrator):
        customer = make_customer(
            communication_preferences=CommunicationPreferences(preferred_channel=ChannelType.SMS),
        )
        # email 0.7, sms 0.7 + 0.2 preference
        context = make_context(customer=customer, urgency_score=0.2, engagement_score=0.5)
        selected = await orchestrator.select_channel(context, FLOWS["default"])
        assert selected.type == ChannelType.SMS

    @pytest.mark.asyncio
    async def test_history_derived_tie_goes_to_first_channel(self, orchestrator, customer):
        """Scores that are equal on paper tie even after repeated effectiveness steps."""
        email = ChannelConfig(
            type=ChannelType.EMAIL,
            priority=1,
            wait_time_hours=48,
            templates=("friendly_reminder",),
            thresholds=ChannelThresholds(urgency=2.0, sentiment=2.0, engagement=2.0),
        )
        sms = ChannelConfig(
            type=ChannelType.SMS,
            priority=2,
            wait_time_hours=24,
            templates=("brief_reminder",),
            thresholds=ChannelThresholds(urgency=2.0, sentiment=-1.0, engagement=0.0),
        )
        flow = CommunicationFlow(name="tie", channels=[email, sms])

        outcomes = [
            (ChannelType.EMAIL, True),
            (ChannelType.SMS, True),
            (ChannelType.SMS, False),
            (ChannelType.SMS, False),
        ]
        for channel_type, success in outcomes:
            await orchestrator.history.append(customer.id, AttemptRecord(
                channel=channel_type,
                response_time_hours=1.0,
                sentiment=0.0,
                success=success,
                engagement_score=0.5,
                follow_up_required=not success,
            ))
            await orchestrator.effectiveness.adjust(customer.id, channel_type, 0.1 if success else -0.1)

        # email: 0.3 × 1 + 0.6; sms: 0.2 + 0.2 + 0.3 × 1/3 + 0.4
        context = await orchestrator.build_context(customer, make_document())
        selected = await orchestrator.select_channel(context, flow)
        assert selected.type == ChannelType.EMAIL
