"""Rolling and daily evaporation computations."""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, timedelta, timezone
from functools import lru_cache
from typing import Callable, Dict, Optional, Tuple

from app.schemas import DailyEvaporation, RollingEvaporation
from datastore.realtime_db import RealtimeStore, build_default_store
from models.records import EvapResult
from services.aggregator import WindowAggregator
from services.fetcher import LogFetcher
from services.heights import HeightSampleStore
from services.parser import RainLogParser
from settings import Settings, get_settings

logger = logging.getLogger(__name__)

ROLLING_PATH = "/evap10min"
DAILY_PATH = "/daily"

Window = Tuple[datetime, datetime]


def epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp()) * 1000 + moment.microsecond // 1000


class EvaporationComputer:
    """Combines height deltas with rainfall into evaporation estimates.

    ``evap_mm = (height at window start - height at window end) + rain in window``.
    Both cycles log and return ``None`` instead of raising, so schedulers and
    HTTP triggers can call them unguarded.
    """

    def __init__(
        self,
        settings: Settings,
        store: RealtimeStore,
        fetcher: LogFetcher,
        heights: Optional[HeightSampleStore] = None,
        parser: Optional[RainLogParser] = None,
        aggregator: Optional[WindowAggregator] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.settings = settings
        self.zone = settings.zone
        self.store = store
        self.fetcher = fetcher
        self.heights = heights or HeightSampleStore(
            store,
            zone=self.zone,
            search_adjacent_days=settings.history_search_adjacent_days,
        )
        self.parser = parser or RainLogParser(self.zone, settings.station_match)
        self.aggregator = aggregator or WindowAggregator()
        self._clock = clock or (lambda: datetime.now(self.zone))

    def window_rolling(self, now: datetime) -> Window:
        end = self._localize(now)
        # Elapsed time, so a DST fall-back never stretches the window.
        elapsed = timedelta(minutes=self.settings.rolling_interval_minutes)
        start = (end.astimezone(timezone.utc) - elapsed).astimezone(self.zone)
        return start, end

    def window_daily(self, reference_time: datetime) -> Window:
        local = self._localize(reference_time)
        end = local.replace(
            hour=self.settings.daily_hour, minute=0, second=0, microsecond=0
        )
        if end > local:
            end -= timedelta(days=1)
        return end - timedelta(hours=24), end

    async def compute_rolling(self, now: Optional[datetime] = None) -> Optional[EvapResult]:
        now = self._localize(now if now is not None else self._clock())
        context = {"job": "rolling", "station": self.settings.station_code}
        try:
            start, end = self.window_rolling(now)
            context.update(window_start=start, window_end=end)

            live = await self.heights.latest_live()
            if live.distance is None:
                logger.warning(
                    "Skipping cycle", extra={**context, "reason": "no live distance"}
                )
                return None

            previous = await self.heights.closest_history(start)
            if previous is None:
                logger.warning(
                    "Skipping cycle", extra={**context, "reason": "no history near window start"}
                )
                return None

            rain = await self._rain_between(start, end, context)
            if rain is None:
                return None

            result = EvapResult.from_components(
                window_start=start,
                window_end=end,
                height_prev=previous.distance_mm,
                height_now=live.distance,
                rain_sum=rain,
            )
            record = RollingEvaporation(
                timestamp=epoch_ms(now),
                evap_mm=result.evap_mm,
                h_prev=result.height_prev,
                h_now=result.height_now,
                rain_10min=result.rain_sum,
            )
            key = f"{ROLLING_PATH}/{record.timestamp}"
            await asyncio.to_thread(self.store.set, key, record.model_dump())
            logger.info(
                "Saved rolling evaporation",
                extra={**context, "key": key, "rain_mm": rain, "evap_mm": result.evap_mm},
            )
            return result
        except Exception:  # scheduled cycles must never propagate
            logger.exception("Rolling evaporation cycle failed", extra=context)
            return None

    async def compute_daily(
        self, reference_time: Optional[datetime] = None
    ) -> Optional[EvapResult]:
        reference = self._localize(
            reference_time if reference_time is not None else self._clock()
        )
        context = {"job": "daily", "station": self.settings.station_code}
        try:
            start, end = self.window_daily(reference)
            context.update(window_start=start, window_end=end)

            height_end = await self.heights.closest_history(end)
            height_start = await self.heights.closest_history(start)
            if height_end is None or height_start is None:
                logger.warning(
                    "Skipping cycle", extra={**context, "reason": "missing daily height"}
                )
                return None

            rain = await self._rain_between(start, end, context)
            if rain is None:
                return None

            result = EvapResult.from_components(
                window_start=start,
                window_end=end,
                height_prev=height_start.distance_mm,
                height_now=height_end.distance_mm,
                rain_sum=rain,
            )
            day_key = end.date().isoformat()
            record = DailyEvaporation(
                date=day_key,
                evap_mm=result.evap_mm,
                h7_yesterday=result.height_prev,
                h7_today=result.height_now,
                rain_24h=result.rain_sum,
                created_at=epoch_ms(self._localize(self._clock())),
            )
            key = f"{DAILY_PATH}/{day_key}"
            await asyncio.to_thread(self.store.set, key, record.model_dump(by_alias=True))
            logger.info(
                "Saved daily evaporation",
                extra={**context, "key": key, "rain_mm": rain, "evap_mm": result.evap_mm},
            )
            return result
        except Exception:  # scheduled cycles must never propagate
            logger.exception("Daily evaporation cycle failed", extra=context)
            return None

    async def _rain_between(
        self, start: datetime, end: datetime, context: Dict[str, object]
    ) -> Optional[float]:
        days = [start.date(), end.date()]
        texts: Dict[date, Optional[str]] = await self.fetcher.fetch_many(days)
        present = [text for text in texts.values() if text is not None]

        if not any(text.strip() for text in present):
            logger.warning("Skipping cycle", extra={**context, "reason": "no rain log data"})
            return None
        if len(present) < len(texts):
            logger.info(
                "Continuing with partial rain data",
                extra={**context, "reason": "one rain log unavailable"},
            )

        events = self.parser.parse("\n".join(present), self.settings.station_code)
        rain = self.aggregator.sum_within(events, start, end)
        logger.debug(
            "Aggregated rain",
            extra={
                **context,
                "event_count": self.aggregator.count_within(events, start, end),
                "rain_mm": rain,
            },
        )
        return rain

    def _localize(self, moment: datetime) -> datetime:
        if moment.tzinfo is None:
            return moment.replace(tzinfo=self.zone)
        return moment.astimezone(self.zone)


@lru_cache
def build_default_computer() -> EvaporationComputer:
    """Factory that wires the computer with the configured store and log source."""
    settings = get_settings()
    return EvaporationComputer(
        settings=settings,
        store=build_default_store(),
        fetcher=LogFetcher.from_settings(settings),
    )
