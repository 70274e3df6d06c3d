"""HTTP route definitions for the service."""

from __future__ import annotations

import asyncio
from typing import Any, Dict

from fastapi import APIRouter, Depends, status

from app.schemas import TriggerResponse
from datastore.realtime_db import RealtimeStore, build_default_store
from services.evaporation import (
    DAILY_PATH,
    ROLLING_PATH,
    EvaporationComputer,
    build_default_computer,
)
from services.heights import LIVE_PATH

RECENT_LIMIT = 100

router = APIRouter()


def get_store() -> RealtimeStore:
    return build_default_store()


def get_computer() -> EvaporationComputer:
    return build_default_computer()


@router.get(
    "/api/realtime",
    summary="Latest live sensor reading.",
)
async def realtime(store: RealtimeStore = Depends(get_store)) -> Dict[str, Any]:
    return await asyncio.to_thread(store.get, LIVE_PATH) or {}


@router.get(
    "/api/evap10/recent",
    summary="Most recent rolling evaporation records, ordered by key.",
)
async def recent_rolling(store: RealtimeStore = Depends(get_store)) -> Dict[str, Any]:
    return await asyncio.to_thread(store.children, ROLLING_PATH, RECENT_LIMIT)


@router.get(
    "/api/daily",
    summary="All daily evaporation records.",
)
async def daily(store: RealtimeStore = Depends(get_store)) -> Dict[str, Any]:
    return await asyncio.to_thread(store.get, DAILY_PATH) or {}


@router.post(
    "/api/trigger10",
    response_model=TriggerResponse,
    summary="Run the rolling evaporation computation now.",
)
async def trigger_rolling(
    computer: EvaporationComputer = Depends(get_computer),
) -> TriggerResponse:
    await computer.compute_rolling()
    return TriggerResponse()


@router.post(
    "/api/triggerDaily",
    response_model=TriggerResponse,
    summary="Run the daily evaporation computation now.",
)
async def trigger_daily(
    computer: EvaporationComputer = Depends(get_computer),
) -> TriggerResponse:
    await computer.compute_daily()
    return TriggerResponse()


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
