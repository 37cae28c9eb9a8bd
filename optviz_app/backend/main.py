"""
Options Visualization Backend - FastAPI Application

Serves historical OHLCV data, stores option records in SQLite and hosts a
small server-rendered dashboard that overlays the portfolio on the chart.
"""

import logging
import time
from collections import defaultdict
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from optviz.utils.error_handling import format_error_body
from optviz_app.backend.api import dashboard, health, ohlcv, options
from optviz_app.backend.backend_core.config import settings
from optviz_app.backend.backend_core.errors import ApiError

# Configure logging early
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)

# Enable debug logging for our packages if DEBUG is enabled
if settings.DEBUG:
    logging.getLogger("optviz").setLevel(logging.DEBUG)
    logging.getLogger("optviz_app").setLevel(logging.DEBUG)

# Create FastAPI app
app = FastAPI(
    title="Options Visualization API",
    description="Historical prices and option annotations for the portfolio chart",
    version=settings.APP_VERSION,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Rate limiting (simple in-memory, per-IP)
_rate_limit_store: dict = defaultdict(list)  # ip -> [timestamps]


@app.middleware("http")
async def rate_limit_middleware(request: Request, call_next):
    """Simple in-memory rate limiter (per-IP, sliding window)."""
    if not settings.RATE_LIMIT_ENABLED:
        return await call_next(request)

    client_ip = request.client.host if request.client else "unknown"
    now = time.monotonic()
    cutoff = now - settings.RATE_LIMIT_WINDOW_SECONDS

    # Prune old entries
    _rate_limit_store[client_ip] = [t for t in _rate_limit_store[client_ip] if t > cutoff]

    if len(_rate_limit_store[client_ip]) >= settings.RATE_LIMIT_REQUESTS:
        logger.warning(f"Rate limit exceeded for {client_ip}")
        return JSONResponse(
            status_code=429,
            content=format_error_body(
                "Too many requests",
                "Too many requests from this IP, please try again later.",
            ),
            headers={"Retry-After": str(settings.RATE_LIMIT_WINDOW_SECONDS)},
        )

    _rate_limit_store[client_ip].append(now)
    return await call_next(request)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming requests with timing."""
    start_time = time.time()
    logger.info("REQUEST %s %s", request.method, request.url.path)
    if settings.DEBUG:
        logger.debug(f"   Query params: {dict(request.query_params)}")

    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"Error processing request: {e}", exc_info=True)
        raise

    process_time = time.time() - start_time
    logger.info("RESPONSE %s %s - %s (%.3fs)", request.method, request.url.path, response.status_code, process_time)
    return response


# Include routers
app.include_router(health.router, prefix="/api/health", tags=["health"])
app.include_router(ohlcv.router, prefix="/api", tags=["prices"])
app.include_router(options.router, prefix="/api/options", tags=["options"])
app.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])


@app.get("/")
def root():
    """Service banner."""
    return {
        "message": "Options Visualization API",
        "version": settings.APP_VERSION,
        "runtime": "Python/FastAPI",
    }


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    return JSONResponse(status_code=exc.status_code, content=format_error_body(exc.error, exc.message))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    detail = errors[0].get("msg", "Malformed request") if errors else "Malformed request"
    logger.info(f"Invalid request body for {request.method} {request.url.path}: {detail}")
    return JSONResponse(status_code=400, content=format_error_body("Invalid request body", str(detail)))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    target = f"{request.method} {request.url.path}"
    if exc.status_code == 404:
        body = format_error_body("Endpoint not found", f"The endpoint {target} does not exist")
    elif exc.status_code == 405:
        body = format_error_body("Method not allowed", f"The endpoint {target} does not support this method")
    else:
        body = format_error_body(str(exc.detail), str(exc.detail))
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler; internal detail stays in the log."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=format_error_body("Internal server error", "An unexpected error occurred"),
    )


@app.on_event("startup")
async def startup_event():
    """Initialize on startup."""
    from optviz_app.backend.backend_core.database import init_db

    if settings.RUN_DB_STARTUP:
        init_db()
        logger.info("Database tables created/verified")
    else:
        logger.info("Skipping DB init on startup (set RUN_DB_STARTUP=true to enable)")

    logger.info("Options Visualization backend starting up...")
    logger.info(f"CORS origins: {settings.CORS_ORIGINS}")


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown."""
    logger.info("Options Visualization backend shutting down...")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "optviz_app.backend.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
