"""Predicate/message rules shared by the insight and recommendation generators."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from engagement.models import EngagementFactors, EngagementScore

Predicate = Callable[[EngagementFactors, EngagementScore], bool]


@dataclass(frozen=True)
class Rule:
    """A single observation or suggestion.

    Attributes:
        name: Stable identifier, used in logs and tests.
        predicate: Called with normalised factors and the visitor's score;
            the rule fires when it returns ``True``.
        message: Text contributed when the rule fires.
    """

    name: str
    predicate: Predicate
    message: str


def evaluate(
    rules: list[Rule], factors: EngagementFactors, score: EngagementScore
) -> list[str]:
    """Return the message of every rule that fires, in declaration order.

    Rules are independent: none can suppress or reorder another's output.
    """
    return [rule.message for rule in rules if rule.predicate(factors, score)]
