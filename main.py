"""FastAPI application entrypoint for the digital marketplace API."""
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import router
from app.core.config import settings
from app.core.errors import setup_exception_handlers
from app.core.logging import get_logger, setup_logging
from app.infrastructure.database import get_engine, init_db

# Initialize structured logging
log_format = settings.environment == "production"
setup_logging(level=settings.log_level, json_format=log_format)
logger = get_logger(__name__)

# Application metadata
APP_VERSION = "1.0.0"
APP_NAME = "Digital Marketplace API"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the tables on startup."""
    logger.info("Application starting up", extra={"operation": "startup"})
    init_db()
    yield
    logger.info("Application shutting down", extra={"operation": "shutdown"})


app = FastAPI(
    title=APP_NAME,
    description="Users create, sell and buy digital products",
    version=APP_VERSION,
    docs_url="/docs" if settings.environment != "production" else None,  # Disable in prod
    redoc_url="/redoc" if settings.environment != "production" else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

setup_exception_handlers(app)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Middleware to log all requests with timing and status code."""
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id
    request_logger = get_logger(__name__, {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
    })

    start_time = time.time()

    request_logger.info(f"Request started: {request.method} {request.url.path}")

    try:
        response = await call_next(request)
        duration_ms = (time.time() - start_time) * 1000

        request_logger.info(
            f"Request completed: {request.method} {request.url.path}",
            extra={
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            }
        )

        response.headers["X-Request-ID"] = request_id
        return response

    except Exception as e:
        duration_ms = (time.time() - start_time) * 1000
        request_logger.error(
            f"Request failed: {request.method} {request.url.path}",
            extra={
                "duration_ms": round(duration_ms, 2),
                "error_type": type(e).__name__,
            },
            exc_info=True
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=[{"msg": "Internal server error"}],
            headers={"X-Request-ID": request_id},
        )


app.include_router(router)


@app.get("/")
def root():
    """Root endpoint with basic service info."""
    return {
        "service": APP_NAME,
        "version": APP_VERSION,
        "status": "running",
        "environment": settings.environment
    }


@app.get("/health")
def health_check():
    """Liveness check. Returns 200 while the process is serving."""
    return {
        "status": "healthy",
        "version": APP_VERSION,
        "checks": {
            "api": "ok",
            "config": "ok" if settings.database_url else "missing"
        }
    }


@app.get("/ready")
def readiness_check():
    """Readiness check - verifies the database and Redis are reachable.

    The service stays ready without Redis: the token blacklist falls back
    to memory.
    """
    checks = {}

    try:
        with get_engine().connect() as connection:
            connection.exec_driver_sql("SELECT 1")
        checks["database"] = "ok"
    except Exception as e:
        logger.warning(f"Database not reachable: {e}")
        checks["database"] = "error"

    # Check Redis if configured
    try:
        from app.infrastructure.redis import get_redis_client
        redis = get_redis_client()
        if redis:
            redis.ping()
            checks["redis"] = "ok"
        else:
            checks["redis"] = "fallback_memory"
    except Exception:
        checks["redis"] = "fallback_memory"

    all_ok = checks["database"] == "ok"

    return {
        "status": "ready" if all_ok else "degraded",
        "checks": checks
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=settings.port, reload=settings.debug)
