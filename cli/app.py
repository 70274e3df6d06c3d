from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_daily, render_realtime, render_rolling


class Computation(str, Enum):
    rolling = "rolling"
    daily = "daily"


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the evaporation monitor service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Service base URL (defaults to API_BASE_URL env or http://localhost:4000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="HTTP timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("realtime")
def realtime_command(ctx: typer.Context) -> None:
    """Show the latest live distance reading."""
    state = _get_state(ctx)
    render_realtime(state.client.get_realtime())


@app.command("recent")
def recent_command(ctx: typer.Context) -> None:
    """List the most recent rolling evaporation records."""
    state = _get_state(ctx)
    render_rolling(state.client.get_recent())


@app.command("daily")
def daily_command(ctx: typer.Context) -> None:
    """List daily evaporation records."""
    state = _get_state(ctx)
    render_daily(state.client.get_daily())


@app.command("trigger")
def trigger_command(
    ctx: typer.Context,
    computation: Computation = typer.Argument(..., help="Which computation to run."),
) -> None:
    """Run a computation on the server immediately."""
    state = _get_state(ctx)
    typer.echo(f"Triggering {computation.value} computation on {state.config.base_url} ...")
    payload = state.client.trigger(computation.value)
    typer.secho(f"Trigger accepted. status={payload.get('status')}", fg=typer.colors.GREEN)
