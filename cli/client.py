from __future__ import annotations

from typing import Any, Dict

import httpx
import typer

from cli.config import CLIConfig

TRIGGER_PATHS = {
    "rolling": "/api/trigger10",
    "daily": "/api/triggerDaily",
}


class ApiClient:
    """Minimal HTTP client for the evaporation monitor service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def get_realtime(self) -> Dict[str, Any]:
        return self._get("/api/realtime")

    def get_recent(self) -> Dict[str, Any]:
        return self._get("/api/evap10/recent")

    def get_daily(self) -> Dict[str, Any]:
        return self._get("/api/daily")

    def trigger(self, kind: str) -> Dict[str, Any]:
        path = TRIGGER_PATHS.get(kind)
        if path is None:
            raise typer.BadParameter(
                f"Unknown computation {kind!r}; expected one of {', '.join(TRIGGER_PATHS)}."
            )
        try:
            response = self._client.post(path)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.RequestError as exc:
            self._handle_request_error(exc)
        return response.json()

    def _get(self, path: str) -> Dict[str, Any]:
        try:
            response = self._client.get(path)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.RequestError as exc:
            self._handle_request_error(exc)
        payload = response.json()
        return payload if isinstance(payload, dict) else {}

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    @staticmethod
    def _handle_request_error(exc: httpx.RequestError) -> None:
        typer.secho(f"Could not reach {exc.request.url}: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
