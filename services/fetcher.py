"""Retrieval of daily rainfall log files over HTTP."""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Dict, Iterable, Optional

import httpx

from settings import Settings

logger = logging.getLogger(__name__)


def format_log_day(day: date) -> str:
    return day.strftime("%d-%m-%Y")


class LogFetcher:
    """Fetches ``<base><prefix><DD-MM-YYYY>.txt`` and reports failures as ``None``."""

    def __init__(
        self,
        base_url: str,
        file_prefix: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url if base_url.endswith("/") else f"{base_url}/"
        self.file_prefix = file_prefix
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Settings) -> "LogFetcher":
        return cls(
            base_url=settings.rain_base_url,
            file_prefix=settings.rain_file_prefix,
            timeout=settings.fetch_timeout,
        )

    def log_url(self, day: date) -> str:
        return f"{self.base_url}{self.file_prefix}{format_log_day(day)}.txt"

    async def fetch(self, day: date) -> Optional[str]:
        url = self.log_url(day)
        logger.info("Fetching rain log", extra={"url": url})
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning(
                "Rain log unavailable",
                extra={"url": url, "reason": str(exc) or type(exc).__name__},
            )
            return None
        return response.text

    async def fetch_many(self, days: Iterable[date]) -> Dict[date, Optional[str]]:
        """Fetch every distinct day concurrently; each day fails independently."""
        unique_days = list(dict.fromkeys(days))
        texts = await asyncio.gather(*(self.fetch(day) for day in unique_days))
        return dict(zip(unique_days, texts))

    async def aclose(self) -> None:
        await self._client.aclose()
