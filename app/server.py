"""
civic-pulse: live feed server
=============================

Polls an Open311 endpoint every REFRESH_MINUTES, paces the updated requests
out one at a time, and pushes them to websocket subscribers.

Endpoints:
- GET /health               -> liveness + scheduler counters
- GET /api/requests/recent  -> recency cache snapshot (newest first)
- WS  /ws                   -> "existing-requests" on connect, then "new-request" per release

Usage:
    uvicorn app.server:app --port 3000
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from broadcast.socket_hub import SocketHub
from collectors.ingestion_service import IngestionService
from collectors.release_scheduler import ReleaseScheduler
from config.open311_cities import resolve_endpoint
from config.settings import settings
from sources.open311.client import Open311Client


# =============================================================================
# RUNTIME WIRING
# =============================================================================

@dataclass
class PulseRuntime:
    hub: SocketHub
    scheduler: ReleaseScheduler
    ingestion: Optional[IngestionService] = None
    client: Optional[Open311Client] = None


def build_runtime() -> PulseRuntime:
    """Wire client, hub, scheduler and ingestion from settings."""
    endpoint, jurisdiction = resolve_endpoint(
        settings.OPEN311_CITY, settings.OPEN311_ENDPOINT, settings.OPEN311_JURISDICTION
    )
    client = Open311Client(
        endpoint,
        jurisdiction=jurisdiction,
        api_key=settings.OPEN311_API_KEY,
        timeout=settings.HTTP_TIMEOUT,
    )

    refresh = timedelta(minutes=settings.REFRESH_MINUTES)
    hub = SocketHub()
    scheduler = ReleaseScheduler(
        hub,
        refresh_interval=refresh,
        min_delay=timedelta(milliseconds=settings.MIN_DELAY_MS),
        cache_capacity=settings.CACHE_CAPACITY,
    )
    ingestion = IngestionService(
        fetch_updates=client.fetch_updates,
        scheduler=scheduler,
        refresh_interval=refresh,
        initial_lookback=timedelta(minutes=settings.INITIAL_LOOKBACK_MINUTES),
        include_extensions=settings.INCLUDE_EXTENSIONS,
    )

    print(f"[SERVER] source={endpoint} refresh={settings.REFRESH_MINUTES}m "
          f"min_delay={settings.MIN_DELAY_MS}ms cache={settings.CACHE_CAPACITY}")

    return PulseRuntime(hub=hub, scheduler=scheduler, ingestion=ingestion, client=client)


# =============================================================================
# APP FACTORY
# =============================================================================

def create_app(runtime_factory: Callable[[], PulseRuntime] = build_runtime) -> FastAPI:

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        runtime = runtime_factory()
        app.state.runtime = runtime

        # Startup fetch failures are logged inside ingest(); they never block startup
        trigger: Optional[asyncio.Task] = None
        if runtime.ingestion is not None:
            trigger = asyncio.create_task(runtime.ingestion.run_forever())

        yield

        print("[SERVER] shutting down")
        if trigger is not None:
            trigger.cancel()
            try:
                await trigger
            except asyncio.CancelledError:
                pass
        runtime.scheduler.close()
        await runtime.hub.flush()
        if runtime.client is not None:
            await runtime.client.aclose()

    app = FastAPI(
        title="civic-pulse",
        version="0.1.0",
        description="Paced live feed of Open311 service request updates",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health_check():
        runtime: PulseRuntime = app.state.runtime
        return {
            "status": "online",
            "subscribers": len(runtime.hub),
            "cached": len(runtime.scheduler.snapshot()),
            "pending_releases": runtime.scheduler.pending,
            "watermark": runtime.ingestion.watermark.isoformat() if runtime.ingestion else None,
        }

    @app.get("/api/requests/recent")
    async def recent_requests():
        runtime: PulseRuntime = app.state.runtime
        return [r.to_message() for r in runtime.scheduler.snapshot()]

    @app.websocket("/ws")
    async def subscribe(ws: WebSocket):
        runtime: PulseRuntime = app.state.runtime
        await ws.accept()

        # connect + snapshot + send with no await in between: see SocketHub
        runtime.hub.connect(ws)
        try:
            await runtime.hub.send_snapshot(ws, runtime.scheduler.snapshot())
            while True:
                # inbound frames are ignored; this only detects disconnects
                await ws.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            runtime.hub.disconnect(ws)

    return app


app = create_app()
