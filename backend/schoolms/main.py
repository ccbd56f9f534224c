from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from slowapi.errors import RateLimitExceeded

from schoolms import __version__
from schoolms.core.config import settings
from schoolms.core.database import init_db, close_db
from schoolms.core.exceptions import SchoolError, error_response
from schoolms.core.logging_config import logger
from schoolms.core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from schoolms.core.rate_limiter import limiter, rate_limit_exceeded_handler
from schoolms.api.v1.router import api_router
from schoolms.db.seed_data import seed_all


def validate_critical_config():
    """Validate critical configuration at startup - fail fast if missing"""
    errors = []

    if not settings.DATABASE_URL:
        errors.append("DATABASE_URL is not set")

    if not settings.SECRET_KEY or settings.SECRET_KEY == "CHANGE_ME":
        errors.append("SECRET_KEY is not set or using default value")

    if not settings.JWT_SECRET_KEY or settings.JWT_SECRET_KEY == "CHANGE_ME":
        errors.append("JWT_SECRET_KEY is not set or using default value")

    if errors:
        for err in errors:
            logger.critical(f"[Startup] CRITICAL: {err}")
        raise RuntimeError(f"Missing critical configuration: {', '.join(errors)}")

    if not (settings.SMTP_USER and settings.SMTP_PASSWORD):
        logger.warning("[Startup] WARNING: SMTP credentials not set - account and reset emails will fail")

    logger.info("[Startup] Critical configuration validated")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: config check, tables, seed data. All of it finishes before serving."""
    logger.info("=" * 60)
    logger.info(f"Starting {settings.APP_NAME}...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"API Version: {settings.API_VERSION}")
    logger.info("=" * 60)

    validate_critical_config()

    await init_db()
    logger.info("[Startup] Database tables ready")

    if settings.SEED_ON_STARTUP:
        await seed_all()

    yield

    logger.info(f"Shutting down {settings.APP_NAME}...")
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    description="Role-based school administration: accounts, dashboards, academic records and payments",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    redirect_slashes=False
)

# Rate limiter state and exception handler
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Middleware (last added runs first)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Response-Time"],
)


@app.exception_handler(SchoolError)
async def school_error_handler(request: Request, exc: SchoolError):
    logger.warning(f"[API] {request.method} {request.url.path} -> {exc.code}: {exc.message}")
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=error_response(exc), headers=headers)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.log_error_with_context(exc, context=f"{request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "message": str(exc) if settings.DEBUG else "An error occurred"
        }
    )


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "app_name": settings.APP_NAME,
        "version": __version__,
        "environment": settings.ENVIRONMENT
    }


app.include_router(api_router, prefix=f"/api/{settings.API_VERSION}")
