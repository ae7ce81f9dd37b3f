"""사장노트 API - FastAPI Application Entry Point."""

import logging
import time
import uuid

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from sajang_api import __version__
from sajang_api.config import env
from sajang_api.context import place_id_var, request_id_var, user_id_var
from sajang_api.errors import SajangError
from sajang_api.problem_details import problem_from_error, problem_from_status, title_for_status
from sajang_api.routers import cron, health, my_places, places, references, refresh, subscription
from sajang_api.utils import configure_json_logging

app = FastAPI(
    title="사장노트 API",
    description="Naver place registration, crawl and AI analysis lifecycle for 사장노트.",
    version=__version__,
)

# Set SAJANG_JSON_LOGS=false to disable (defaults to true)
if env.is_json_logging_enabled():
    configure_json_logging(log_level=env.get_log_level())

logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=env.get_cors_allowed_origins(),  # Never "*" with credentials
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)


# ============================================================================
# HTTP Request Completion Logging Middleware
# ============================================================================


@app.middleware("http")
async def http_completion_logging_middleware(request: Request, call_next):
    """Log every HTTP request completion.

    - Every HTTP request emits "http.request.completed"
    - Fields: method, path, status_code, duration_ms (+ request_id/user_id/place_id
      from context via JSONFormatter)
    - Logs even on exceptions (status_code=500)
    - Clears per-request contextvars at start and end
    """
    user_id_var.set("")
    place_id_var.set("")

    start_time = time.perf_counter()
    status_code = 500  # Default in case of unhandled exception

    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "http.request.completed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
        user_id_var.set("")
        place_id_var.set("")


# ============================================================================
# Request ID Middleware (MUST BE OUTERMOST)
# ============================================================================


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Generate and propagate request_id.

    - Accepts X-Request-ID header from client (optional)
    - Generates new UUID if not provided
    - Returns X-Request-ID in response headers

    Registered last so it is the outermost middleware and the context
    variable is set before inner middlewares run.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request_id_var.set(request_id)

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# ============================================================================
# RFC 9457 Global Exception Handlers
# ============================================================================


@app.exception_handler(SajangError)
async def sajang_error_handler(request: Request, exc: SajangError) -> JSONResponse:
    """Typed domain errors -> application/problem+json with error/errorCode."""
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "Request failed",
        extra={
            "event": "http.request.problem",
            "status_code": exc.status_code,
            "error_code": exc.error_code,
            "error_type": type(exc).__name__,
        },
    )
    return problem_from_error(exc)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """HTTP exceptions (404 route, 405, ...) with RFC 9457 Problem Details format."""
    detail = exc.detail if exc.detail is not None else title_for_status(exc.status_code)
    response = problem_from_status(exc.status_code, detail)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request validation errors -> 422 problem with the first failing field."""
    errors = exc.errors()
    first_error = errors[0] if errors else {}
    field = ".".join(str(loc) for loc in first_error.get("loc", []))
    msg = first_error.get("msg", "Validation error")
    return problem_from_status(422, f"Invalid field '{field}': {msg}")


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Uncaught exceptions -> 500 problem with a generic message."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return problem_from_status(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "요청 처리 중 오류가 발생했습니다.",
    )


# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(places.router)
app.include_router(my_places.router)
app.include_router(refresh.router)
app.include_router(references.router)
app.include_router(cron.router)
app.include_router(subscription.router)
