"""End-to-end tests of the rolling and daily evaporation cycles."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

import pytest

from conftest import LogServer, local
from datastore.realtime_db import RealtimeStore
from services.evaporation import epoch_ms

ROLLING_LOG = "\n".join(
    [
        "STG1079;15032024065959;7.0",
        "STG1079;15032024070000;1.0",
        "STG2000;15032024070100;5.0",
        "STG1079;15032024070500;0.5",
        "STG1079;15032024071000;4.0",
    ]
)


def _seed_rolling(store: RealtimeStore, log_server: LogServer) -> None:
    store.set("/devices/LIVE", {"distance": 118.0, "updatedAt": 1710461400000})
    store.set(
        "/history/15-03-2024",
        {"06:40:00": {"distance": 125.0}, "07:00:30": {"distance": 120.0}},
    )
    log_server.add("15-03-2024", ROLLING_LOG)


def _seed_daily(store: RealtimeStore, log_server: LogServer) -> None:
    store.set("/history/14-03-2024", {"07:01:00": {"distance": 130.0}})
    store.set(
        "/history/15-03-2024",
        {"06:58:00": {"distance": 127.0}, "12:00:00": {"distance": 100.0}},
    )
    log_server.add(
        "14-03-2024",
        "STG1079;14032024063000;9.0\nSTG1079;14032024120000;2.0\n",
    )
    log_server.add(
        "15-03-2024",
        "STG1079;15032024065959;0.5\nSTG1079;15032024070000;3.0\n",
    )


def test_epoch_ms_matches_utc_instant() -> None:
    assert epoch_ms(local(2024, 3, 15, 7, 10)) == int(
        datetime(2024, 3, 15, 0, 10, tzinfo=timezone.utc).timestamp() * 1000
    )


def test_window_rolling_is_ten_minutes(make_computer) -> None:
    computer = make_computer()

    start, end = computer.window_rolling(local(2024, 3, 15, 7, 10))

    assert (start, end) == (local(2024, 3, 15, 7, 0), local(2024, 3, 15, 7, 10))


def test_window_rolling_spans_ten_real_minutes_across_dst_fall_back(make_computer) -> None:
    computer = make_computer(timezone="Europe/Berlin")

    start, end = computer.window_rolling(datetime(2024, 10, 27, 1, 5, tzinfo=timezone.utc))

    assert start.astimezone(timezone.utc) == datetime(2024, 10, 27, 0, 55, tzinfo=timezone.utc)
    assert end.astimezone(timezone.utc) == datetime(2024, 10, 27, 1, 5, tzinfo=timezone.utc)
    assert start.utcoffset() != end.utcoffset()


@pytest.mark.parametrize(
    ("reference", "expected_end"),
    [
        (local(2024, 3, 15, 8, 30), local(2024, 3, 15, 7, 0)),
        (local(2024, 3, 15, 7, 0), local(2024, 3, 15, 7, 0)),
        (local(2024, 3, 15, 6, 59, 59), local(2024, 3, 14, 7, 0)),
        (local(2024, 3, 1, 0, 30), local(2024, 2, 29, 7, 0)),
    ],
)
def test_window_daily_ends_at_latest_seven_oclock(
    make_computer, reference: datetime, expected_end: datetime
) -> None:
    computer = make_computer()

    start, end = computer.window_daily(reference)

    assert end == expected_end
    assert (end - start).total_seconds() == 24 * 3600


def test_window_daily_localises_naive_and_utc_references(make_computer) -> None:
    computer = make_computer()

    naive = computer.window_daily(datetime(2024, 3, 15, 8, 0))
    utc = computer.window_daily(datetime(2024, 3, 15, 1, 0, tzinfo=timezone.utc))

    assert naive[1] == local(2024, 3, 15, 7, 0)
    assert utc[1] == local(2024, 3, 15, 7, 0)


def test_compute_rolling_writes_record(
    make_computer, store: RealtimeStore, log_server: LogServer
) -> None:
    _seed_rolling(store, log_server)
    computer = make_computer()
    now = local(2024, 3, 15, 7, 10)

    result = asyncio.run(computer.compute_rolling(now))

    assert result is not None
    assert result.height_prev == 120.0
    assert result.height_now == 118.0
    assert result.rain_sum == 1.5
    assert result.evap_mm == 3.5
    assert (result.window_start, result.window_end) == (local(2024, 3, 15, 7, 0), now)

    key = epoch_ms(now)
    assert store.get(f"/evap10min/{key}") == {
        "timestamp": key,
        "evap_mm": 3.5,
        "h_prev": 120.0,
        "h_now": 118.0,
        "rain_10min": 1.5,
    }
    assert log_server.requests == ["logARG-15-03-2024.txt"]


def test_compute_rolling_uses_clock_when_now_omitted(
    make_computer, store: RealtimeStore, log_server: LogServer
) -> None:
    _seed_rolling(store, log_server)
    computer = make_computer(clock=lambda: local(2024, 3, 15, 7, 10))

    result = asyncio.run(computer.compute_rolling())

    assert result is not None
    assert result.evap_mm == 3.5


def test_compute_rolling_fetches_both_days_across_midnight(
    make_computer, store: RealtimeStore, log_server: LogServer
) -> None:
    store.set("/devices/LIVE", {"distance": 99.0})
    store.set("/history/14-03-2024", {"23:55:00": {"distance": 100.0}})
    log_server.add("14-03-2024", "STG1079;14032024235800;0.2\n")
    log_server.add("15-03-2024", "STG1079;15032024000100;0.3\nSTG1079;15032024000500;9.0\n")
    computer = make_computer()

    result = asyncio.run(computer.compute_rolling(local(2024, 3, 15, 0, 5)))

    assert result is not None
    assert result.rain_sum == pytest.approx(0.5)
    assert result.evap_mm == pytest.approx(1.5)
    assert sorted(log_server.requests) == ["logARG-14-03-2024.txt", "logARG-15-03-2024.txt"]


def test_compute_rolling_without_live_height_writes_nothing_then_recovers(
    make_computer, store: RealtimeStore, log_server: LogServer, caplog
) -> None:
    _seed_rolling(store, log_server)
    store.set("/devices/LIVE", {"updatedAt": 1})
    computer = make_computer()

    with caplog.at_level(logging.WARNING):
        skipped = asyncio.run(computer.compute_rolling(local(2024, 3, 15, 7, 10)))

    assert skipped is None
    assert store.get("/evap10min") is None
    assert any(record.levelno == logging.WARNING for record in caplog.records)

    store.set("/devices/LIVE", {"distance": 118.0})
    result = asyncio.run(computer.compute_rolling(local(2024, 3, 15, 7, 20)))

    assert result is not None
    assert list(store.children("/evap10min")) == [str(epoch_ms(local(2024, 3, 15, 7, 20)))]


def test_compute_rolling_without_history_is_skipped(
    make_computer, store: RealtimeStore, log_server: LogServer
) -> None:
    store.set("/devices/LIVE", {"distance": 118.0})
    log_server.add("15-03-2024", ROLLING_LOG)
    computer = make_computer()

    assert asyncio.run(computer.compute_rolling(local(2024, 3, 15, 7, 10))) is None
    assert store.get("/evap10min") is None


def test_compute_rolling_without_any_rain_log_is_skipped(
    make_computer, store: RealtimeStore, log_server: LogServer
) -> None:
    _seed_rolling(store, log_server)
    log_server.files.clear()
    computer = make_computer()

    assert asyncio.run(computer.compute_rolling(local(2024, 3, 15, 7, 10))) is None
    assert store.get("/evap10min") is None


def test_compute_rolling_with_log_lacking_station_rain_counts_zero(
    make_computer, store: RealtimeStore, log_server: LogServer
) -> None:
    _seed_rolling(store, log_server)
    log_server.add("15-03-2024", "STG2000;15032024070100;5.0\n")
    computer = make_computer()

    result = asyncio.run(computer.compute_rolling(local(2024, 3, 15, 7, 10)))

    assert result is not None
    assert result.rain_sum == 0.0
    assert result.evap_mm == 2.0


def test_compute_rolling_swallows_store_errors(
    make_computer, store: RealtimeStore, log_server: LogServer, monkeypatch, caplog
) -> None:
    _seed_rolling(store, log_server)
    computer = make_computer()

    def broken_set(path: str, value: Any) -> None:
        raise RuntimeError("store offline")

    monkeypatch.setattr(store, "set", broken_set)

    with caplog.at_level(logging.ERROR):
        result = asyncio.run(computer.compute_rolling(local(2024, 3, 15, 7, 10)))

    assert result is None
    assert "Rolling evaporation cycle failed" in caplog.text


def test_compute_daily_writes_record(
    make_computer, store: RealtimeStore, log_server: LogServer
) -> None:
    _seed_daily(store, log_server)
    created = local(2024, 3, 15, 8, 30)
    computer = make_computer(clock=lambda: created)

    result = asyncio.run(computer.compute_daily(local(2024, 3, 15, 8, 30)))

    assert result is not None
    assert result.window_start == local(2024, 3, 14, 7, 0)
    assert result.window_end == local(2024, 3, 15, 7, 0)
    assert result.rain_sum == 2.5
    assert result.evap_mm == 5.5
    assert store.get("/daily/2024-03-15") == {
        "date": "2024-03-15",
        "evap_mm": 5.5,
        "h7_yesterday": 130.0,
        "h7_today": 127.0,
        "rain_24h": 2.5,
        "createdAt": epoch_ms(created),
    }


def test_compute_daily_is_idempotent(
    make_computer, store: RealtimeStore, log_server: LogServer
) -> None:
    _seed_daily(store, log_server)
    computer = make_computer(clock=lambda: local(2024, 3, 15, 7, 0))

    asyncio.run(computer.compute_daily())
    first = store.get("/daily")
    asyncio.run(computer.compute_daily(local(2024, 3, 15, 9, 0)))
    second = store.get("/daily")

    assert list(first) == ["2024-03-15"]
    assert first == second


def test_compute_daily_with_one_log_missing_uses_the_other(
    make_computer, store: RealtimeStore, log_server: LogServer
) -> None:
    _seed_daily(store, log_server)
    log_server.fail("15-03-2024")
    computer = make_computer()

    result = asyncio.run(computer.compute_daily(local(2024, 3, 15, 8, 30)))

    assert result is not None
    assert result.rain_sum == 2.0
    assert store.get("/daily/2024-03-15/rain_24h") == 2.0


def test_compute_daily_missing_height_is_skipped(
    make_computer, store: RealtimeStore, log_server: LogServer
) -> None:
    _seed_daily(store, log_server)
    store.set("/history/14-03-2024", None)
    computer = make_computer(history_search_adjacent_days=False)

    assert asyncio.run(computer.compute_daily(local(2024, 3, 15, 8, 30))) is None
    assert store.get("/daily") is None


def test_compute_daily_honours_configured_hour(
    make_computer, store: RealtimeStore, log_server: LogServer
) -> None:
    _seed_daily(store, log_server)
    computer = make_computer(daily_hour=6)

    result = asyncio.run(computer.compute_daily(local(2024, 3, 15, 8, 30)))

    assert result is not None
    assert result.window_end == local(2024, 3, 15, 6, 0)
    assert result.rain_sum == 11.0
