"""Shared fixtures for the evaporation monitor tests."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, Iterator, List, Optional
from zoneinfo import ZoneInfo

import httpx
import pytest

from datastore.realtime_db import RealtimeStore
from services.evaporation import EvaporationComputer
from services.fetcher import LogFetcher
from settings import Settings

ZONE = ZoneInfo("Asia/Jakarta")
BASE_URL = "http://logs.test/logfile/"
PREFIX = "logARG-"


def local(*args: int) -> datetime:
    return datetime(*args, tzinfo=ZONE)


class LogServer:
    """In-memory stand-in for the remote log directory."""

    def __init__(self) -> None:
        self.files: Dict[str, str] = {}
        self.failing: set[str] = set()
        self.requests: List[str] = []

    def add(self, day_label: str, text: str) -> None:
        self.files[f"{PREFIX}{day_label}.txt"] = text

    def fail(self, day_label: str) -> None:
        self.failing.add(f"{PREFIX}{day_label}.txt")

    def handler(self, request: httpx.Request) -> httpx.Response:
        name = request.url.path.rsplit("/", 1)[-1]
        self.requests.append(name)
        if name in self.failing:
            raise httpx.ConnectError("connection refused", request=request)
        text = self.files.get(name)
        if text is None:
            return httpx.Response(404, text="not found")
        return httpx.Response(200, text=text)

    def fetcher(self) -> LogFetcher:
        client = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return LogFetcher(base_url=BASE_URL, file_prefix=PREFIX, client=client)


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        rain_base_url=BASE_URL,
        rain_file_prefix=PREFIX,
        store_path=None,
        scheduler_enabled=False,
    )


@pytest.fixture()
def store() -> RealtimeStore:
    return RealtimeStore(name="test")


@pytest.fixture()
def log_server() -> LogServer:
    return LogServer()


@pytest.fixture()
def make_computer(
    settings: Settings, store: RealtimeStore, log_server: LogServer
) -> Iterator[Callable[..., EvaporationComputer]]:
    def factory(
        clock: Optional[Callable[[], datetime]] = None, **overrides: object
    ) -> EvaporationComputer:
        effective = replace(settings, **overrides)
        return EvaporationComputer(
            settings=effective,
            store=store,
            fetcher=log_server.fetcher(),
            clock=clock,
        )

    yield factory
