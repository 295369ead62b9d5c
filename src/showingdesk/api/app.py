"""FastAPI application with lifespan and router mounting."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from showingdesk.api.routes import admin, health, requests
from showingdesk.core.logging import configure_logging
from showingdesk.engine.factory import Runtime, create_runtime
from showingdesk.persistence.memory_backend import MemoryRequestStore
from showingdesk.triggers.router import TriggerRouter
from showingdesk.triggers.timer_worker import TimerWorker


def create_app(runtime: Runtime | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Pass ``runtime`` to run against injected backends (tests, local demos).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Initialize and tear down application resources."""
        rt = runtime or create_runtime()
        configure_logging(rt.settings.log_level, rt.settings.log_json)
        router = TriggerRouter(rt.engine)
        # The memory store has no external change stream; feed it in-process.
        if isinstance(rt.persistence.requests, MemoryRequestStore):
            rt.persistence.requests.subscribe(router.on_record_written)
        app.state.runtime = rt
        app.state.router = router

        stop = asyncio.Event()
        worker_task = None
        if rt.settings.escalation.run_timer_worker:
            worker = TimerWorker(
                rt.engine,
                rt.persistence.scheduler,
                rt.clock,
                poll_interval_seconds=rt.settings.escalation.timer_poll_interval_seconds,
                retry_delay_seconds=rt.settings.escalation.retry_delay_seconds,
            )
            worker_task = asyncio.create_task(worker.run(stop))
        yield
        stop.set()
        if worker_task is not None:
            await worker_task

    app = FastAPI(
        title="showingdesk",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(health.router)
    app.include_router(requests.router, prefix="/requests")
    app.include_router(admin.router, prefix="/admin")
    return app
