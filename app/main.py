from __future__ import annotations
import asyncio
import contextlib
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from datastore.ledger import build_default_ledger
from logging_config import configure_logging
from services.generator import BlockGenerator
from settings import get_settings


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    ledger = build_default_ledger()
    task: asyncio.Task[None] | None = None
    if settings.generator_enabled:
        generator = BlockGenerator(
            ledger,
            batch_id=settings.generator_batch_id,
            container_id=settings.generator_container_id,
            seed=settings.generator_seed,
        )
        task = asyncio.create_task(generator.run(settings.generator_interval))
    try:
        yield
    finally:
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        build_default_ledger.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Cold Chain Record Store",
        description="Hash-chained temperature readings served per batch.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
