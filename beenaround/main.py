import logging
import os
import random
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings
from .database import create_tables
from .exceptions import APIError
from .responses import error_body
from .routers.admin import router as admin_router
from .routers.admin_auth import router as admin_auth_router
from .routers.auth import router as auth_router
from .routers.explore import router as explore_router
from .routers.instagram import router as instagram_router
from .routers.notifications import router as notifications_router
from .routers.passport import router as passport_router
from .routers.posts import router as posts_router
from .routers.social import router as social_router
from .routers.user_block import router as user_block_router
from .services.email_service import EmailService
from .services.instagram_service import InstagramClient
from .services.notification_service import PushNotifier
from .services.storage import StorageService

# Configure logging
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables()

    app.state.storage = StorageService.from_settings()
    app.state.notifier = PushNotifier.from_settings()
    app.state.mailer = EmailService.from_settings()
    app.state.instagram = InstagramClient.from_settings()
    logger.info(
        f"Started {settings.app_name}: storage={settings.storage_backend} "
        f"push={'on' if app.state.notifier.enabled else 'off'} "
        f"email={'on' if app.state.mailer.enabled else 'off'}")

    yield


app = FastAPI(
    title="Been Around API",
    description="""
# Been Around API

Been Around is a social travel journal. Users post trips with photos and
ratings, follow other travellers and see how their travel compares.

## Authentication

Register with `POST /auth/register` or log in with `POST /auth/login`, then
send `Authorization: Bearer <token>`. Admin panel tokens come from
`POST /admin/auth/login`.

## Responses

Every endpoint answers with `{status, success, message, data?}`.
""",
    version="1.0.0",
    lifespan=lifespan
)

# Include routers
app.include_router(auth_router)
app.include_router(posts_router)
app.include_router(social_router)
app.include_router(user_block_router)
app.include_router(explore_router)
app.include_router(passport_router)
app.include_router(instagram_router)
app.include_router(notifications_router)
app.include_router(admin_auth_router)
app.include_router(admin_router)

# Serve uploaded media when storing on local disk
if settings.storage_backend == "local":
    os.makedirs(settings.local_media_dir, exist_ok=True)
    app.mount("/media", StaticFiles(directory=settings.local_media_dir), name="media")

# CORS for UI
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Prometheus metrics
REQUEST_COUNT = Counter("http_requests_total", "Total HTTP requests", [
                        "method", "route", "status"])
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2, 5)
)


def _validation_message(exc: RequestValidationError) -> str:
    messages = []
    for err in exc.errors():
        msg = str(err.get("msg", "Invalid value"))
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        loc = err.get("loc") or ()
        field = loc[-1] if loc else None
        if isinstance(field, str) and field not in ("body", "query", "path", "form"):
            msg = f"{field}: {msg}"
        messages.append(msg)
    return ", ".join(messages) or "Validation error"


@app.exception_handler(APIError)
async def api_error_handler(request: Request, exc: APIError):
    if exc.status_code >= 500:
        logger.error(f"{exc.__class__.__name__} on {request.url.path}: {exc.message} ({exc.error})")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, exc.message, exc.error),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=422, content=error_body(422, _validation_message(exc)))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.status_code, message))


@app.middleware("http")
async def add_request_id_and_errors(request: Request, call_next):
    request_id = str(uuid.uuid4())
    # Lightweight JSON log (sample all in debug, a fraction in prod)
    if settings.debug or random.random() < settings.log_sample_rate:
        logger.info({
            "event": "request",
            "method": request.method,
            "path": request.url.path,
            "rid": request_id,
        })
    start = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.exception(f"Unhandled error rid={request_id}")
        route = getattr(request.scope.get("route"), "path", request.url.path)
        REQUEST_COUNT.labels(method=request.method,
                             route=route, status=500).inc()
        return JSONResponse(
            status_code=500,
            content=error_body(500, "Internal server error", str(e)),
            headers={"X-Request-ID": request_id},
        )
    REQUEST_LATENCY.observe(time.perf_counter() - start)
    route = getattr(request.scope.get("route"), "path", request.url.path)
    REQUEST_COUNT.labels(method=request.method,
                         route=route, status=response.status_code).inc()
    response.headers["X-Request-ID"] = request_id
    return response


@app.get("/")
async def root():
    return {"status": 200, "success": True, "message": f"{settings.app_name} API is running"}


@app.get("/metrics")
async def metrics(request: Request):
    # In dev/debug mode, expose metrics without auth
    if not settings.debug:
        token = request.headers.get("X-Metrics-Token")
        if not settings.metrics_token or token != settings.metrics_token:
            return JSONResponse(status_code=403, content=error_body(403, "Forbidden"))
    data = generate_latest()
    return PlainTextResponse(content=data, media_type=CONTENT_TYPE_LATEST)
