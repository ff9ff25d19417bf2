import asyncio
import logging
import os
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from telecare.api.routes import booking_sessions, doctor_availability, staff_appointments
from telecare.core.config import settings, _ENV_FILE
from telecare.core.errors import BookingError
from telecare.services.session_registry import BookingSessionRegistry

if os.getenv("ENV") != "production":
    logging.basicConfig(level=logging.DEBUG)
else:
    logging.basicConfig(
        level=logging.INFO,
        format='{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s"}',
    )
logger = logging.getLogger(__name__)


async def _purge_idle_sessions(registry: BookingSessionRegistry) -> None:
    """Close booking sessions idle for more than session_idle_minutes."""
    try:
        n = await registry.purge_idle(timedelta(minutes=settings.session_idle_minutes))
        if n:
            logger.info("Session cleanup: closed %d idle session(s)", n)
    except Exception as e:
        logger.exception("Session cleanup failed: %s", e)


async def _purge_loop(registry: BookingSessionRegistry) -> None:
    while True:
        await asyncio.sleep(settings.session_purge_interval_seconds)
        await _purge_idle_sessions(registry)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Loading .env from: %s (exists: %s)", _ENV_FILE, _ENV_FILE.exists())
    logger.info("Appointment backend: %s", settings.api_base_url)
    if not hasattr(app.state, "registry"):
        app.state.registry = BookingSessionRegistry()
    task = asyncio.create_task(_purge_loop(app.state.registry))
    yield
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    await app.state.registry.close_all()


app = FastAPI(
    title="Telecare Booking API",
    description="Appointment slot selection and booking for the telehealth client",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

app.include_router(booking_sessions.router, prefix="/api/v1")
app.include_router(staff_appointments.router, prefix="/api/v1")
app.include_router(doctor_availability.router, prefix="/api/v1")


def _cors_headers(origin: str | None) -> dict[str, str]:
    """Add CORS headers to error responses so the browser doesn't block them."""
    headers = {
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Methods": "GET, POST, PUT, PATCH, DELETE, OPTIONS",
        "Access-Control-Allow-Headers": "Authorization, Content-Type",
    }
    if origin and origin in settings.cors_origins_list:
        headers["Access-Control-Allow-Origin"] = origin
    elif settings.cors_origins_list:
        headers["Access-Control-Allow-Origin"] = settings.cors_origins_list[0]
    return headers


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    """Typed booking errors keep their code so the UI can pick a retry or disable action."""
    if exc.status_code >= 500:
        logger.warning("%s: %s", type(exc).__name__, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code},
        headers=_cors_headers(request.headers.get("origin")),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return actual error in JSON; include CORS so 500 responses are not blocked by browser."""
    headers = _cors_headers(request.headers.get("origin"))
    if isinstance(exc, HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=headers,
        )
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": f"{type(exc).__name__}: {str(exc)}"},
        headers=headers,
    )


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}
