"""FastAPI REST interface for the Espree terminal collector.

Single-process, single-panel service with serialized access to:
- EspreeCollector (serial navigation, screen decoding, field scraping)
- ReadingStore (pandas DataFrame storage)
- GatherScheduler (background gather cycles)

Error mapping:
- ChannelError → 503
- TerminalError (decode / unsupported sequence / cursor range) → 502
- FieldNotFound → 422
- Other exceptions → 500
"""

import logging
import os
import threading
from pathlib import Path
from typing import Dict, List, Optional, Union

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse
from pydantic import BaseModel

from data_store import GatherScheduler, ReadingStore
from espree_lib import CollectorConfig, EspreeCollector
from espree_lib.errors import ChannelError, FieldNotFound, TerminalError

# =============================================================================
# Environment Configuration
# =============================================================================

API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "9160"))
GATHER_INTERVAL_S = float(os.getenv("GATHER_INTERVAL_S", "60"))
API_VERSION = "0.1.0"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# =============================================================================
# Global Singletons
# =============================================================================

_collector: Optional[EspreeCollector] = None
_store: Optional[ReadingStore] = None
_scheduler: Optional[GatherScheduler] = None
_cycle_lock = threading.Lock()  # One gather cycle on the serial port at a time

app = FastAPI(
    title="Espree Collector API",
    description="REST interface for Espree cryogen panel telemetry scraped over serial",
    version=API_VERSION,
)

# =============================================================================
# Request/Response Models
# =============================================================================


class ReadingResponse(BaseModel):
    """A gathered reading."""
    timestamp: str
    name: str
    tags: Dict[str, str]
    fields: Dict[str, Union[bool, float]]


class StatusResponse(BaseModel):
    """Response for GET /status."""
    name: str
    port: str
    scheduled: bool
    interval_s: Optional[float]
    rows: int
    cycles_ok: int
    cycles_failed: int
    last_error: Optional[str]


class StatsResponse(BaseModel):
    """Response for GET /stats."""
    row_count: int
    start_time: Optional[str]
    end_time: Optional[str]
    duration_s: float
    compressor_on_ratio: Optional[float]


class ScheduleResponse(BaseModel):
    """Response for POST /schedule/start and /schedule/stop."""
    status: str
    interval_s: Optional[float] = None


# =============================================================================
# Singleton Access
# =============================================================================


def _get_collector() -> EspreeCollector:
    global _collector
    if _collector is None:
        config = CollectorConfig.from_env()
        logger.info(f"Creating collector for {config.name} on {config.port}")
        _collector = EspreeCollector(config)
    return _collector


def _get_store() -> ReadingStore:
    global _store
    if _store is None:
        _store = ReadingStore(max_rows=100000)
    return _store


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(ChannelError)
async def channel_error_handler(request: Request, exc: ChannelError):
    """Map ChannelError to 503 Service Unavailable."""
    logger.error(f"ChannelError: {exc}")
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.exception_handler(TerminalError)
async def terminal_error_handler(request: Request, exc: TerminalError):
    """Map decode failures to 502 Bad Gateway; the panel sent something unexpected."""
    logger.error(f"{type(exc).__name__}: {exc}")
    return JSONResponse(
        status_code=502,
        content={"detail": str(exc), "error": type(exc).__name__, "raw_bytes": len(exc.raw)},
    )


@app.exception_handler(FieldNotFound)
async def field_not_found_handler(request: Request, exc: FieldNotFound):
    """Map FieldNotFound to 422 Unprocessable Entity."""
    logger.error(f"FieldNotFound: {exc}")
    return JSONResponse(status_code=422, content={"detail": str(exc), "field": exc.field})


# =============================================================================
# Gather Endpoints
# =============================================================================


@app.post("/gather", response_model=ReadingResponse)
def gather():
    """Run one gather cycle now and record the reading.

    Blocks for the full navigation delay plus the response window.

    Raises:
        503: If the serial port fails (ChannelError)
        502: If the screen cannot be decoded (TerminalError)
        422: If a field is missing from the screen (FieldNotFound)
    """
    collector = _get_collector()
    with _cycle_lock:
        reading = collector.gather()
    _get_store().append_reading(reading)

    return ReadingResponse(
        timestamp=reading.ts.isoformat(),
        name=reading.name,
        tags=reading.tags,
        fields=reading.fields,
    )


@app.get("/latest")
async def get_latest():
    """Get the most recent stored reading, or {} if none."""
    latest = _get_store().get_latest()
    return latest if latest else {}


@app.get("/recent")
async def get_recent(seconds: int = Query(3600, ge=1, le=86400)):
    """Get stored readings from the last N seconds."""
    recent_df = _get_store().get_recent(seconds=seconds)
    rows: List[dict] = recent_df.to_dict(orient="records")
    return {"rows": rows}


@app.get("/screen", response_class=PlainTextResponse)
async def get_screen():
    """Settled screen text from the last cycle that decoded cleanly."""
    screen = _get_collector().last_screen
    if screen is None:
        raise HTTPException(status_code=404, detail="No screen captured yet")
    return screen.as_text()


# =============================================================================
# Scheduling Endpoints
# =============================================================================


@app.post("/schedule/start", response_model=ScheduleResponse)
async def start_schedule(interval_s: float = Query(GATHER_INTERVAL_S, gt=0)):
    """Start gathering in the background every interval_s seconds."""
    global _scheduler

    if _scheduler is not None and _scheduler.is_running():
        raise HTTPException(status_code=400, detail="Scheduler already running")

    _scheduler = GatherScheduler(
        _get_collector(), _get_store(), interval_s=interval_s, cycle_lock=_cycle_lock
    )
    _scheduler.start()
    return ScheduleResponse(status="started", interval_s=interval_s)


@app.post("/schedule/stop", response_model=ScheduleResponse)
def stop_schedule():
    """Stop background gathering, waiting for an in-flight cycle."""
    if _scheduler is None or not _scheduler.is_running():
        raise HTTPException(status_code=400, detail="Scheduler not running")

    _scheduler.stop()
    return ScheduleResponse(status="stopped")


# =============================================================================
# Status, Statistics & Export Endpoints
# =============================================================================


@app.get("/status", response_model=StatusResponse)
async def get_status():
    """Collector identity, scheduler state and cycle counters."""
    collector = _get_collector()
    scheduled = _scheduler is not None and _scheduler.is_running()

    return StatusResponse(
        name=collector.name,
        port=collector.config.port,
        scheduled=scheduled,
        interval_s=_scheduler.interval_s if scheduled else None,
        rows=len(_get_store()),
        cycles_ok=_scheduler.cycles_ok if _scheduler else 0,
        cycles_failed=_scheduler.cycles_failed if _scheduler else 0,
        last_error=_scheduler.last_error if _scheduler else None,
    )


@app.get("/stats", response_model=StatsResponse)
async def get_stats():
    """Row count, time range and compressor duty of stored readings."""
    return StatsResponse(**_get_store().get_stats())


@app.get("/export/csv")
async def export_csv():
    """Export stored readings to a timestamped CSV file and download it.

    Raises:
        400: If no data available
    """
    store = _get_store()
    if len(store) == 0:
        raise HTTPException(status_code=400, detail="No data to export")

    csv_path = store.export_csv()
    return FileResponse(path=csv_path, media_type="text/csv", filename=Path(csv_path).name)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "service": "Espree Collector API",
        "version": API_VERSION,
        "status": "online"
    }


# =============================================================================
# Startup/Shutdown Events
# =============================================================================


@app.on_event("startup")
async def startup_event():
    """Log startup and configuration."""
    config = _get_collector().config
    logger.info("=" * 60)
    logger.info("Espree Collector API started")
    logger.info(f"Version: {API_VERSION}")
    logger.info(f"Host: {API_HOST}")
    logger.info(f"Port: {API_PORT}")
    logger.info(f"Instrument: {config.name}")
    logger.info(f"Serial Port: {config.port} @ {config.baud}")
    logger.info(f"Response Window: {config.response_window} bytes")
    logger.info(f"Log Level: {LOG_LEVEL}")
    logger.info("=" * 60)


@app.on_event("shutdown")
async def shutdown_event():
    """Stop background gathering on shutdown."""
    logger.info("Shutting down Espree Collector API...")
    if _scheduler and _scheduler.is_running():
        _scheduler.stop()
    logger.info("Shutdown complete")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=API_HOST, port=API_PORT)
