"""
AnswerScope FastAPI application entry point.
"""
import logging
import time
import uuid
from contextvars import ContextVar

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.database.init_db import create_tables
from app.database.session import storage_session
from app.routes.analysis import router as analysis_router
from app.routes.assignments import router as assignments_router
from app.routes.health import router as health_router
from app.services.config_service import config_service

REQUEST_ID_HEADER = "X-Request-ID"
LOG_FORMAT = "%(asctime)s level=%(levelname)s logger=%(name)s msg=%(message)s request_id=%(request_id)s"

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDFilter(logging.Filter):
    """Stamp every record with the id of the request being served."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("")
        return True


def configure_logging() -> None:
    """Key=value log lines on the root handlers, level taken from LOG_LEVEL."""
    level = str(config_service.get_setting("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)

    # Handler-level filter so records propagated from child loggers get request_id too
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RequestIDFilter) for f in handler.filters):
            handler.addFilter(RequestIDFilter())


configure_logging()
logger = logging.getLogger("app.request")

app = FastAPI(
    title="AnswerScope",
    description="Short-answer analytics: question difficulty, performance bands, answer clusters and mistake patterns",
    version="0.1.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure properly for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def on_startup() -> None:
    """Create tables and re-apply settings saved through the settings API."""
    create_tables()
    with storage_session() as storage:
        saved = storage.get_settings()
    for key, value in saved.items():
        config_service.set_setting(key, value)
    logging.getLogger("app.startup").info(f"AnswerScope started: restored_settings={sorted(saved)}")


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
    request_id_var.set(request_id)
    started = time.time()

    logger.info(
        f"Request started method={request.method} path={request.url.path} "
        f"client_ip={request.client.host if request.client else 'unknown'}"
    )

    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"Unhandled error method={request.method} path={request.url.path}: {e}")
        response = JSONResponse(status_code=500, content={"detail": "Internal server error", "request_id": request_id})

    response.headers[REQUEST_ID_HEADER] = request_id
    logger.info(
        f"Request completed status_code={response.status_code} duration_ms={round((time.time() - started) * 1000, 2)}"
    )
    return response


app.include_router(health_router, tags=["health"])
app.include_router(assignments_router, tags=["assignments"])
app.include_router(analysis_router, tags=["analysis"])
