"""Access to live and historical water-surface distance readings."""

from __future__ import annotations

import asyncio
import logging
import math
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Any, List, Optional

from datastore.realtime_db import RealtimeStore
from models.records import HeightSample, LiveReading
from services.fetcher import format_log_day

logger = logging.getLogger(__name__)

LIVE_PATH = "/devices/LIVE"
HISTORY_PATH = "/history"


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _parse_time_of_day(value: str) -> Optional[time]:
    parts = value.strip().split(":")
    if len(parts) > 3:
        return None
    try:
        numbers = [int(part or "0") for part in parts]
    except ValueError:
        return None
    numbers.extend([0] * (3 - len(numbers)))
    hour, minute, second = numbers
    try:
        return time(hour, minute, second)
    except ValueError:
        return None


class HeightSampleStore:
    """Reads height samples from the ``/devices/LIVE`` and ``/history`` branches.

    History buckets are keyed by local calendar day (``DD-MM-YYYY``); each
    entry is keyed by time of day, or carries a ``time`` field.
    """

    def __init__(
        self,
        store: RealtimeStore,
        zone: tzinfo,
        search_adjacent_days: bool = True,
    ) -> None:
        self.store = store
        self.zone = zone
        self.search_adjacent_days = search_adjacent_days

    async def latest_live(self) -> LiveReading:
        payload = await asyncio.to_thread(self.store.get, LIVE_PATH)
        if not isinstance(payload, dict):
            payload = {}
        return LiveReading(
            distance=_as_number(payload.get("distance")),
            updated_at=payload.get("updatedAt"),
        )

    async def closest_history(self, target: datetime) -> Optional[HeightSample]:
        local_target = target.astimezone(self.zone)
        day = local_target.date()
        days = [day]
        if self.search_adjacent_days:
            days = [day - timedelta(days=1), day, day + timedelta(days=1)]

        samples: List[HeightSample] = []
        for bucket_day in days:
            samples.extend(await self.history_for_day(bucket_day))
        if not samples:
            return None

        # min() keeps the first of equal candidates, so ties go to the earlier sample.
        samples.sort(key=lambda sample: sample.timestamp)
        return min(samples, key=lambda sample: abs(sample.timestamp - local_target))

    async def history_for_day(self, day: date) -> List[HeightSample]:
        path = f"{HISTORY_PATH}/{format_log_day(day)}"
        entries = await asyncio.to_thread(self.store.get, path)
        if not isinstance(entries, dict):
            return []

        samples: List[HeightSample] = []
        for key, record in entries.items():
            if not isinstance(record, dict):
                continue
            distance = _as_number(record.get("distance"))
            if distance is None:
                continue
            time_raw = key if ":" in key else str(record.get("time") or key)
            time_of_day = _parse_time_of_day(time_raw)
            if time_of_day is None:
                logger.debug(
                    "Skipping history entry with unreadable time",
                    extra={"key": key, "day": format_log_day(day)},
                )
                continue
            samples.append(
                HeightSample(
                    timestamp=datetime.combine(day, time_of_day, tzinfo=self.zone),
                    distance_mm=distance,
                )
            )
        return samples
