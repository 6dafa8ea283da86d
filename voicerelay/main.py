from __future__ import annotations

"""FastAPI app entry: recorder page, transcription relay, healthz, metrics."""

import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from time import perf_counter

from fastapi import FastAPI, Request
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse
import structlog

from voicerelay.api.transcribe import router as transcribe_router
from voicerelay.config.settings import get_settings
from voicerelay.services.logging import configure_logging, get_logger
from voicerelay.services.metrics import metrics


# Fails fast when ASSEMBLYAI_API_KEY is missing or blank
configure_logging(get_settings().log_level)
logger = get_logger()

_RECORDER_PAGE = Path(__file__).parent / "static" / "recorder.html"


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info(
        "startup",
        provider_base_url=settings.provider_base_url,
        retry_attempts=settings.retry.attempts,
        poll_interval_seconds=settings.provider.poll_interval_seconds,
    )
    yield
    logger.info("shutdown")


app = FastAPI(title="voicerelay", lifespan=lifespan)
app.include_router(transcribe_router)


def _route_label(request: Request) -> str:
    # route template, never the raw request path
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


@app.middleware("http")
async def trace_and_measure(request: Request, call_next):
    trace_id = request.headers.get("X-Trace-Id") or uuid.uuid4().hex
    structlog.contextvars.bind_contextvars(trace_id=trace_id)
    start = perf_counter()
    status = 500
    try:
        response = await call_next(request)
        status = response.status_code
        response.headers["X-Trace-Id"] = trace_id
        return response
    finally:
        path = _route_label(request)
        metrics.inc(
            "http_requests_total",
            labels={"method": request.method, "path": path, "status": str(status)},
        )
        metrics.observe("http_request_seconds", perf_counter() - start, labels={"path": path})
        structlog.contextvars.clear_contextvars()


@app.exception_handler(Exception)
async def unhandled_exception(request: Request, exc: Exception) -> JSONResponse:
    get_logger().exception("unhandled_exception", path=request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.get("/", include_in_schema=False)
async def recorder_page() -> FileResponse:
    return FileResponse(str(_RECORDER_PAGE), media_type="text/html")


@app.get("/healthz", response_class=PlainTextResponse)
async def healthz() -> str:
    return "ok"


@app.get("/metrics", response_class=PlainTextResponse)
async def metrics_endpoint() -> str:
    return metrics.to_prometheus()


def run() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run("voicerelay.main:app", host=settings.app_host, port=settings.app_port)


if __name__ == "__main__":
    run()
