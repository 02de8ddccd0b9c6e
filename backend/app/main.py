"""Residence Auth API application"""

import logging
import time
import traceback
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.api.v1 import auth, roles, users
from app.config import settings
from app.core.database import SessionLocal, engine, init_db
from app.core.exceptions import BaseAPIException, InvalidTokenError
from app.schemas.response import HealthResponse


def configure_logging() -> None:
    log_file = Path(settings.get_log_file())
    log_file.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.FileHandler(log_file), logging.StreamHandler()],
    )


configure_logging()
logger = logging.getLogger(__name__)

REQUEST_COUNT = Counter(
    "residence_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)
REQUEST_LATENCY = Histogram(
    "residence_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)


def bootstrap_admin() -> None:
    """Create the configured administrator account on first start."""
    from app.schemas.user import UserCreate
    from app.services.user_service import user_service

    db = SessionLocal()
    try:
        if user_service.get_user_by_email(db, settings.ADMIN_EMAIL):
            return
        user_service.create_user(
            db,
            UserCreate(
                email=settings.ADMIN_EMAIL,
                password=settings.ADMIN_PASSWORD,
                full_name="Administrator",
                role="admin",
            ),
        )
        logger.info("Created admin user %s", settings.ADMIN_EMAIL)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings.validate_security_settings()
    logger.info("Starting %s v%s (%s)", settings.APP_NAME, settings.APP_VERSION, settings.ENVIRONMENT)

    init_db()
    try:
        bootstrap_admin()
    except (SQLAlchemyError, BaseAPIException) as exc:
        logger.error("Admin bootstrap failed: %s", exc)

    yield

    engine.dispose()
    logger.info("Stopped %s", settings.APP_NAME)


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    docs_url="/api/docs" if settings.DEBUG else None,
    redoc_url="/api/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# Renewed access tokens travel back in the Authorization response header
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Authorization"],
)


@app.middleware("http")
async def security_headers(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    request.state.request_id = request_id

    started = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - started

    response.headers.update({
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Referrer-Policy": "no-referrer",
        "Cache-Control": "no-store",
        "X-Request-ID": request_id,
    })

    route = request.scope.get("route")
    path = getattr(route, "path", request.url.path)
    REQUEST_COUNT.labels(request.method, path, str(response.status_code)).inc()
    REQUEST_LATENCY.labels(request.method, path).observe(elapsed)
    if elapsed > 1.0:
        logger.warning("Slow request %s %s: %.2fs (%s)", request.method, path, elapsed, request_id)

    return response


def error_response(
    request: Request,
    status_code: int,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """The one error envelope every handler renders."""
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": message,
            "details": details or {},
            "path": request.url.path,
            "timestamp": datetime.utcnow().isoformat(),
        },
        headers=headers,
    )


@app.exception_handler(BaseAPIException)
async def api_exception_handler(request: Request, exc: BaseAPIException):
    if isinstance(exc, InvalidTokenError):
        # The caller only ever sees the generic message
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc.failure)
    else:
        logger.warning("%s %s -> %d %s", request.method, request.url.path, exc.status_code, exc.message)

    headers = dict(exc.headers)
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers["WWW-Authenticate"] = "Bearer"
    return error_response(request, exc.status_code, exc.message, exc.details, headers or None)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    logger.info("%s %s invalid request: %s", request.method, request.url.path, errors)
    return error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation failed",
        {"errors": errors},
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
    return error_response(request, status.HTTP_503_SERVICE_UNAVAILABLE, "Service temporarily unavailable")


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.critical(
        "Unhandled exception on %s %s: %s\n%s",
        request.method,
        request.url.path,
        exc,
        traceback.format_exc(),
    )
    return error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "An unexpected error occurred.")


@app.get("/health", response_model=HealthResponse)
def health_check():
    database = {"ok": True, "error": None}
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        database = {"ok": False, "error": str(exc)}

    return HealthResponse(
        status="healthy" if database["ok"] else "degraded",
        version=settings.APP_VERSION,
        timestamp=datetime.utcnow().isoformat(),
        database=database,
    )


@app.get("/metrics")
def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/")
def root():
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
    }


app.include_router(auth.router, prefix="/api/v1/auth", tags=["Authentication"])
app.include_router(users.router, prefix="/api/v1/users", tags=["Users"])
app.include_router(roles.router, prefix="/api/v1/roles", tags=["Roles"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        workers=1 if settings.DEBUG else settings.WORKERS,
    )
