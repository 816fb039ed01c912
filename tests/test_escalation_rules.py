"""
Tests for escalation rules and escalation handling.
"""

from datetime import timedelta

import pytest

from doccollect.outreach.escalation import EscalationHandler
from doccollect.outreach.exceptions import UnknownEscalationActionError
from doccollect.outreach.history import InMemoryEscalationStore
from doccollect.outreach.rules import (
    DEFAULT_ESCALATION_RULES,
    EscalationAction,
    EscalationRule,
    evaluate_rules,
    parse_action,
)

from tests.conftest import NOW, make_context, make_document


def always(ctx):
    return True


def never(ctx):
    return False


# =============================================================================
# Rule evaluation
# =============================================================================

class TestRuleEvaluation:

    def test_lowest_priority_number_wins(self):
        """Rules at priority 1 and 3 both match: priority 1 fires."""
        rules = [
            EscalationRule(action=EscalationAction.URGENT_ESCALATION, priority=3, condition=always),
            EscalationRule(action=EscalationAction.ESCALATE_TO_MANAGER, priority=1, condition=always),
        ]
        fired = evaluate_rules(make_context(), rules)
        assert fired.action == EscalationAction.ESCALATE_TO_MANAGER

    def test_inactive_rules_are_skipped(self):
        rules = [
            EscalationRule(action=EscalationAction.ESCALATE_TO_MANAGER, priority=1, condition=always, active=False),
            EscalationRule(action=EscalationAction.SWITCH_CHANNEL, priority=2, condition=always),
        ]
        assert evaluate_rules(make_context(), rules).action == EscalationAction.SWITCH_CHANNEL

    def test_no_match_returns_none(self):
        rules = [EscalationRule(action=EscalationAction.SWITCH_CHANNEL, priority=1, condition=never)]
        assert evaluate_rules(make_context(), rules) is None

    def test_unknown_action_tag_is_rejected(self):
        with pytest.raises(UnknownEscalationActionError):
            EscalationRule(action="call_the_lawyers", priority=1, condition=always)

    def test_string_action_tags_are_normalized(self):
        rule = EscalationRule(action="human_intervention", priority=2, condition=always)
        assert rule.action is EscalationAction.HUMAN_INTERVENTION
        assert parse_action(EscalationAction.SWITCH_CHANNEL) is EscalationAction.SWITCH_CHANNEL


class TestDefaultRules:
    """Tests for the default rule set against representative contexts."""

    def test_calm_context_matches_nothing(self):
        assert evaluate_rules(make_context(), DEFAULT_ESCALATION_RULES) is None

    def test_urgent_document_chased_twice_goes_to_manager(self):
        context = make_context(attempts=2, urgency_score=0.9)
        fired = evaluate_rules(context, DEFAULT_ESCALATION_RULES)
        assert fired.action == EscalationAction.ESCALATE_TO_MANAGER
        assert fired.requires_approval is True

    def test_negative_last_response_needs_a_human(self):
        context = make_context(attempts=2, last_sentiment=-0.8)
        fired = evaluate_rules(context, DEFAULT_ESCALATION_RULES)
        assert fired.action == EscalationAction.HUMAN_INTERVENTION
        assert fired.cooldown_hours == 24

    def test_document_due_within_48_hours(self):
        context = make_context(document=make_document(due_in=timedelta(hours=30)))
        assert evaluate_rules(context, DEFAULT_ESCALATION_RULES).action == EscalationAction.URGENT_ESCALATION

    def test_overdue_document_is_urgent(self):
        context = make_context(document=make_document(due_in=-timedelta(days=3)))
        assert evaluate_rules(context, DEFAULT_ESCALATION_RULES).action == EscalationAction.URGENT_ESCALATION

    def test_disengaged_customer_switches_channel(self):
        context = make_context(attempts=4, engagement_score=0.1, last_sentiment=0.0)
        assert evaluate_rules(context, DEFAULT_ESCALATION_RULES).action == EscalationAction.SWITCH_CHANNEL

    def test_underperforming_channels_try_alternative(self):
        context = make_context(channel_effectiveness={"email": 0.3, "sms": 0.2})
        fired = evaluate_rules(context, DEFAULT_ESCALATION_RULES)
        assert fired.action == EscalationAction.TRY_ALTERNATIVE_CHANNEL

    def test_no_effectiveness_yet_is_not_underperforming(self):
        context = make_context(channel_effectiveness={})
        assert evaluate_rules(context, DEFAULT_ESCALATION_RULES) is None


# =============================================================================
# Escalation handler
# =============================================================================

class TestEscalationHandler:

    @pytest.fixture
    def store(self):
        return InMemoryEscalationStore()

    @pytest.fixture
    def handler(self, store):
        return EscalationHandler(store, default_cooldown_hours=72)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("action,status", [
        (EscalationAction.ESCALATE_TO_MANAGER, "escalated_to_manager"),
        (EscalationAction.HUMAN_INTERVENTION, "human_intervention_required"),
        (EscalationAction.URGENT_ESCALATION, "urgent_escalation"),
        (EscalationAction.SWITCH_CHANNEL, "channel_switch_required"),
        (EscalationAction.TRY_ALTERNATIVE_CHANNEL, "default_escalation"),
    ])
    async def test_dispatch_runs_action_handler(self, handler, action, status):
        rule = EscalationRule(action=action, priority=1, condition=always)
        outcome = await handler.dispatch(rule, make_context())
        assert outcome.action == action
        assert outcome.status == status

    @pytest.mark.asyncio
    async def test_dispatch_opens_escalation(self, handler, store):
        rule = EscalationRule(action=EscalationAction.URGENT_ESCALATION, priority=3, condition=always)
        outcome = await handler.dispatch(rule, make_context())

        open_entries = await store.get_open("cust-001", NOW)
        assert [e.id for e in open_entries] == [outcome.escalation_id]
        assert outcome.escalation_id.startswith("urgent_escalation_")
        assert outcome.expires_at == NOW + timedelta(hours=72)

    @pytest.mark.asyncio
    async def test_rule_cooldown_overrides_default(self, handler):
        rule = EscalationRule(
            action=EscalationAction.HUMAN_INTERVENTION,
            priority=2,
            condition=always,
            cooldown_hours=24,
        )
        outcome = await handler.dispatch(rule, make_context())
        assert outcome.expires_at == NOW + timedelta(hours=24)

    @pytest.mark.asyncio
    async def test_without_any_cooldown_escalation_never_expires(self, store):
        handler = EscalationHandler(store, default_cooldown_hours=None)
        rule = EscalationRule(action=EscalationAction.SWITCH_CHANNEL, priority=4, condition=always)
        outcome = await handler.dispatch(rule, make_context())

        assert outcome.expires_at is None
        assert len(await store.get_open("cust-001", NOW + timedelta(days=365))) == 1

    @pytest.mark.asyncio
    async def test_ids_are_unique_within_the_same_millisecond(self, handler):
        rule = EscalationRule(action=EscalationAction.SWITCH_CHANNEL, priority=4, condition=always)
        first = await handler.dispatch(rule, make_context())
        second = await handler.dispatch(rule, make_context())
        assert first.escalation_id != second.escalation_id
