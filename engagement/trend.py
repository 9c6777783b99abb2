"""Trend calculation between a current and a previous engagement total."""

from __future__ import annotations

from engagement.models import Trend, TrendDirection


def calculate_trend(current: int, previous: int | None) -> Trend:
    """Compare *current* against *previous*.

    A strict two-point comparison: any positive delta is improving, any
    negative delta is declining. With no *previous* total there is no
    baseline and the trend is stable with a zero delta.

    Args:
        current: The latest engagement total.
        previous: The prior total, or ``None`` if there is none.

    Returns:
        A :class:`~engagement.models.Trend`.
    """
    if previous is None:
        return Trend(direction=TrendDirection.STABLE, delta=0)

    delta = current - previous
    if delta > 0:
        direction = TrendDirection.IMPROVING
    elif delta < 0:
        direction = TrendDirection.DECLINING
    else:
        direction = TrendDirection.STABLE

    percentage = delta / previous * 100 if previous > 0 else 0.0
    return Trend(direction=direction, delta=delta, percentage=percentage)
