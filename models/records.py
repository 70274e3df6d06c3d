"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional


def as_instant(moment: datetime) -> datetime:
    """UTC view of ``moment``, so comparisons follow elapsed time across DST shifts."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc)


@dataclass(slots=True, frozen=True)
class RainEvent:
    """A single rainfall entry parsed from a station log line."""

    timestamp: datetime
    amount_mm: float


@dataclass(slots=True, frozen=True)
class HeightSample:
    """A timestamped water-surface distance reading."""

    timestamp: datetime
    distance_mm: float


@dataclass(slots=True, frozen=True)
class LiveReading:
    """The most recent sensor reading stored under ``/devices/LIVE``."""

    distance: Optional[float]
    updated_at: Any = None


@dataclass(slots=True, frozen=True)
class EvapResult:
    """Evaporation estimate over the half-open window ``[window_start, window_end)``."""

    window_start: datetime
    window_end: datetime
    height_prev: float
    height_now: float
    rain_sum: float
    evap_mm: float

    def __post_init__(self) -> None:
        if as_instant(self.window_start) >= as_instant(self.window_end):
            raise ValueError("window_start must be earlier than window_end.")

    @classmethod
    def from_components(
        cls,
        window_start: datetime,
        window_end: datetime,
        height_prev: float,
        height_now: float,
        rain_sum: float,
    ) -> "EvapResult":
        return cls(
            window_start=window_start,
            window_end=window_end,
            height_prev=height_prev,
            height_now=height_now,
            rain_sum=rain_sum,
            evap_mm=(height_prev - height_now) + rain_sum,
        )
