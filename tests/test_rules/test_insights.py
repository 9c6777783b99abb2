"""Tests for the insight rule table."""

from __future__ import annotations

import pytest

from engagement.models import (
    EngagementFactors,
    EngagementLevel,
    EngagementScore,
    ScoreBreakdown,
)
from engagement.rules.base import Rule, evaluate
from engagement.rules.insights import INSIGHT_RULES, generate_insights
from engagement.scorer import calculate_score


def _rule(name: str) -> Rule:
    return next(rule for rule in INSIGHT_RULES if rule.name == name)


def _score(total: int = 50, **breakdown: int) -> EngagementScore:
    return EngagementScore(
        total=total,
        breakdown=ScoreBreakdown(**breakdown),
        level=EngagementLevel.AVERAGE,
    )


class TestRuleTable:
    def test_rule_names_are_unique(self) -> None:
        names = [rule.name for rule in INSIGHT_RULES]
        assert len(names) == len(set(names))

    def test_messages_follow_declaration_order(self, maximal_factors) -> None:
        score = calculate_score(maximal_factors)
        insights = generate_insights(maximal_factors, score)
        order = [rule.message for rule in INSIGHT_RULES]
        positions = [order.index(message) for message in insights]
        assert positions == sorted(positions)

    def test_empty_when_nothing_fires(self) -> None:
        quiet = EngagementFactors(view_duration=120, completion_rate=60, avg_scroll_depth=50)
        assert generate_insights(quiet, _score()) == []

    def test_stable_across_calls(self, typical_factors) -> None:
        score = calculate_score(typical_factors)
        assert generate_insights(typical_factors, score) == generate_insights(
            typical_factors, score
        )

    def test_evaluate_keeps_every_firing_rule(self) -> None:
        rules = [
            Rule("a", lambda f, s: True, "first"),
            Rule("b", lambda f, s: False, "skipped"),
            Rule("c", lambda f, s: True, "third"),
        ]
        assert evaluate(rules, EngagementFactors(), _score()) == ["first", "third"]


class TestIndividualRules:
    @pytest.mark.parametrize(
        "name,factors,fires",
        [
            ("long_visit", EngagementFactors(view_duration=600), True),
            ("long_visit", EngagementFactors(view_duration=599), False),
            ("short_visit", EngagementFactors(view_duration=29), True),
            ("short_visit", EngagementFactors(view_duration=30), False),
            ("near_complete", EngagementFactors(completion_rate=90), True),
            ("early_exit", EngagementFactors(completion_rate=24), True),
            ("early_exit", EngagementFactors(completion_rate=25), False),
            ("skimmed", EngagementFactors(completion_rate=40, view_duration=45), True),
            ("skimmed", EngagementFactors(completion_rate=40, view_duration=300), False),
            ("deep_scroll", EngagementFactors(avg_scroll_depth=80), True),
            ("downloaded", EngagementFactors(downloads=1), True),
            ("offline_copy", EngagementFactors(prints=1, completion_rate=60), True),
            ("offline_copy", EngagementFactors(downloads=1, completion_rate=100), False),
            ("nda_accepted", EngagementFactors(nda_accepted=True), True),
            ("feedback", EngagementFactors(feedback_submitted=True), True),
            ("rapid_bounce", EngagementFactors(rapid_bounce=True), True),
            (
                "loyal_returner",
                EngagementFactors(is_returning_visitor=True, previous_visits=3),
                True,
            ),
            (
                "loyal_returner",
                EngagementFactors(is_returning_visitor=False, previous_visits=3),
                False,
            ),
            (
                "sustained_interest",
                EngagementFactors(is_returning_visitor=True, total_sessions=2),
                True,
            ),
        ],
    )
    def test_predicate(self, name, factors, fires) -> None:
        insights = generate_insights(factors, _score())
        assert (_rule(name).message in insights) is fires

    def test_passive_reader_uses_breakdown(self) -> None:
        message = _rule("passive_reader").message
        factors = EngagementFactors()
        assert message in generate_insights(factors, _score(time=25, action=0))
        assert message not in generate_insights(factors, _score(time=25, action=5))

    def test_completion_derived_for_rules(self) -> None:
        """A missing completion rate is derived before rules run."""
        factors = EngagementFactors(pages_viewed=10, total_pages=10)
        assert _rule("near_complete").message in generate_insights(factors, _score())
