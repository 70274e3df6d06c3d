from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _format_mm(value: Any) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return f"{value:.2f} mm"
    return "n/a"


def _format_epoch_ms(value: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return str(value)
    moment = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="seconds")


def render_realtime(payload: Dict[str, Any]) -> None:
    echo_heading("Live Reading")
    if not payload:
        typer.echo("No live reading available.")
        return
    echo_key_values(
        [
            ("distance", payload.get("distance")),
            ("updatedAt", payload.get("updatedAt")),
        ]
    )


def render_rolling(payload: Dict[str, Any]) -> None:
    echo_heading("Rolling Evaporation")
    if not payload:
        typer.echo("No rolling records available.")
        return
    for key, record in payload.items():
        record = record or {}
        typer.echo(
            f"  - {_format_epoch_ms(record.get('timestamp', key))}: "
            f"evap={_format_mm(record.get('evap_mm'))} "
            f"rain={_format_mm(record.get('rain_10min'))} "
            f"h_prev={record.get('h_prev')} h_now={record.get('h_now')}"
        )


def render_daily(payload: Dict[str, Any]) -> None:
    echo_heading("Daily Evaporation")
    if not payload:
        typer.echo("No daily records available.")
        return
    for key in sorted(payload):
        record = payload[key] or {}
        typer.echo(
            f"  - {record.get('date', key)}: "
            f"evap={_format_mm(record.get('evap_mm'))} "
            f"rain={_format_mm(record.get('rain_24h'))} "
            f"h7_yesterday={record.get('h7_yesterday')} h7_today={record.get('h7_today')}"
        )
