"""Aggregation of rain events over time windows."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Iterable

from models.records import RainEvent, as_instant


class WindowAggregator:
    """Pure aggregation component that can be unit tested in isolation."""

    def sum_within(
        self, events: Iterable[RainEvent], start: datetime, end: datetime
    ) -> float:
        """Sum rainfall for events with ``start <= timestamp < end``."""
        lower, upper = as_instant(start), as_instant(end)
        total = 0.0
        for event in events:
            if lower <= as_instant(event.timestamp) < upper:
                total += _safe_amount(event.amount_mm)
        return total

    def count_within(
        self, events: Iterable[RainEvent], start: datetime, end: datetime
    ) -> int:
        lower, upper = as_instant(start), as_instant(end)
        return sum(1 for event in events if lower <= as_instant(event.timestamp) < upper)


def _safe_amount(value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    amount = float(value)
    return amount if math.isfinite(amount) else 0.0
