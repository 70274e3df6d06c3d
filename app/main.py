from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import router
from logging_config import configure_logging
from services.evaporation import build_default_computer
from services.scheduler import EvaporationScheduler
from settings import get_settings


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    computer = build_default_computer()
    scheduler = EvaporationScheduler(computer)
    if get_settings().scheduler_enabled:
        await scheduler.start()
    try:
        yield
    finally:
        await scheduler.stop()
        await computer.fetcher.aclose()
        build_default_computer.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Evaporation Monitor",
        description="Rolling and daily evaporation estimates from water level and rain logs.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app

app = create_app()
