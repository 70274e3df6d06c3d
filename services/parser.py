"""Parsing of semicolon-delimited station rainfall logs."""

from __future__ import annotations

import logging
import math
from datetime import datetime, tzinfo
from typing import Iterable, List, Optional

from models.records import RainEvent
from settings import StationMatch

logger = logging.getLogger(__name__)

_TIMESTAMP_LENGTH = 14


class RainLogParser:
    """Turns raw log text into rain events for a single station.

    Lines look like ``STG1079;15032024070000;2.5;...``. Anything that does not
    fit that shape is skipped without raising.
    """

    def __init__(
        self,
        zone: tzinfo,
        station_match: StationMatch = StationMatch.upper,
    ) -> None:
        self.zone = zone
        self.station_match = station_match

    def parse(self, log_text: str, station_code: str) -> List[RainEvent]:
        return self.parse_lines(log_text.splitlines(), station_code)

    def parse_lines(self, lines: Iterable[str], station_code: str) -> List[RainEvent]:
        needle = self._normalize_target(station_code)
        events: List[RainEvent] = []
        for line in lines:
            if not line or not line.strip():
                continue
            if needle not in self._normalize_source(line):
                continue

            event = self._parse_line(line, needle)
            if event is None:
                continue
            logger.debug(
                "Accepted rain entry",
                extra={"station": needle, "rain_mm": event.amount_mm},
            )
            events.append(event)
        return events

    def _parse_line(self, line: str, needle: str) -> Optional[RainEvent]:
        parts = line.split(";")
        if len(parts) < 3:
            return None

        code_raw, timestamp_raw, rain_raw = parts[0], parts[1], parts[2]
        if self._normalize_source(code_raw) != needle:
            return None

        timestamp = self._parse_timestamp(timestamp_raw)
        if timestamp is None:
            return None

        try:
            amount = float(rain_raw)
        except ValueError:
            return None
        if not math.isfinite(amount):
            return None

        return RainEvent(timestamp=timestamp, amount_mm=amount)

    def _parse_timestamp(self, value: str) -> Optional[datetime]:
        if len(value) != _TIMESTAMP_LENGTH or not value.isdigit():
            return None
        try:
            return datetime(
                year=int(value[4:8]),
                month=int(value[2:4]),
                day=int(value[0:2]),
                hour=int(value[8:10]),
                minute=int(value[10:12]),
                second=int(value[12:14]),
                tzinfo=self.zone,
            )
        except ValueError:
            return None

    def _normalize_target(self, station_code: str) -> str:
        if self.station_match is StationMatch.exact:
            return station_code
        return station_code.upper()

    def _normalize_source(self, value: str) -> str:
        if self.station_match is StationMatch.insensitive:
            return value.upper()
        return value
