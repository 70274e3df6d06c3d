"""Pydantic schemas for stored evaporation records and the HTTP API layer."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class TriggerStatus(str, Enum):
    """Status reported by the trigger endpoints."""

    ok = "ok"


class RollingEvaporation(BaseModel):
    """Record written to ``/evap10min/<epochMs>`` by the rolling computation."""

    timestamp: int = Field(..., description="Cycle time in epoch milliseconds.")
    evap_mm: float
    h_prev: float
    h_now: float
    rain_10min: float


class DailyEvaporation(BaseModel):
    """Record written to ``/daily/<YYYY-MM-DD>`` by the daily computation."""

    model_config = ConfigDict(populate_by_name=True)

    date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    evap_mm: float
    h7_yesterday: float
    h7_today: float
    rain_24h: float
    created_at: int = Field(..., alias="createdAt")


class TriggerResponse(BaseModel):
    """Response payload of the manual trigger endpoints."""

    status: TriggerStatus = TriggerStatus.ok
