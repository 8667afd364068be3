from contextlib import asynccontextmanager
from typing import Optional
import sys
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from karetek.config import settings
from karetek.api.routes import auth, avatar, chat, health, health_metrics, health_records, oauth, profile, stats
from karetek.core.services import Services, build_services
from karetek.core.storage import LocalStorageClient
from karetek.utils.prometheus_metrics import metrics
from karetek.utils.rate_limit import FixedWindowRateLimiter

# Configure logging
logger.remove()
logger.add(
    sys.stdout,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    level="INFO" if not settings.debug else "DEBUG"
)

RATE_LIMIT_MESSAGE = "Too many requests, please try again later."

def _error_body(request: Request, status_code: int, message) -> dict:
    return {
        "error": True,
        "message": message,
        "status_code": status_code,
        "path": request.url.path
    }

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build collaborators on startup unless they were injected"""
    logger.info("Starting Karetek API server...")

    owned = app.state.services is None
    if owned:
        try:
            app.state.services = build_services(settings)
        except Exception as e:
            logger.error(f"Failed to initialize services: {e}")
            raise
        _mount_media(app, app.state.services)

    logger.info("Karetek API server started successfully")
    yield

    logger.info("Shutting down Karetek API server...")
    if owned:
        app.state.services.close()

def _mount_media(app: FastAPI, services: Services) -> None:
    storage = services.storage
    if isinstance(storage, LocalStorageClient):
        app.mount("/media", StaticFiles(directory=storage.storage_path), name="media")

def create_app(services: Optional[Services] = None) -> FastAPI:
    app = FastAPI(
        title="Karetek Telehealth API",
        description="AI health assistant with multilingual chat, speech and personal health records",
        version="1.0.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan
    )
    app.state.services = services
    app.state.rate_limiter = FixedWindowRateLimiter(
        settings.rate_limit_requests,
        settings.rate_limit_window_minutes * 60
    )
    if services is not None:
        _mount_media(app, services)

    # Rate limiting on the JSON API only
    @app.middleware("http")
    async def rate_limit_middleware(request: Request, call_next):
        if request.url.path.startswith("/api/"):
            client_ip = request.client.host if request.client else "unknown"
            limiter = request.app.state.rate_limiter

            if not limiter.hit(client_ip):
                metrics.record_rate_limited()
                logger.warning(f"Rate limit exceeded for {client_ip} on {request.url.path}")
                return JSONResponse(
                    status_code=429,
                    content={"error": RATE_LIMIT_MESSAGE},
                    headers={"Retry-After": str(limiter.retry_after(client_ip))}
                )

        return await call_next(request)

    # Request timing middleware
    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        start_time = time.time()

        try:
            response = await call_next(request)
            process_time = time.time() - start_time

            response.headers["X-Process-Time"] = str(process_time)

            metrics.record_request(
                method=request.method,
                endpoint=request.url.path,
                status_code=str(response.status_code),
                duration=process_time
            )

            return response

        except Exception as e:
            process_time = time.time() - start_time

            metrics.record_request(
                method=request.method,
                endpoint=request.url.path,
                status_code="500",
                duration=process_time
            )

            logger.error(f"Request failed: {request.method} {request.url.path} - {str(e)}")
            raise

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions"""
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.status_code, exc.detail),
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Malformed request bodies are client errors"""
        problems = [
            f"{'.'.join(str(part) for part in error['loc'] if part != 'body')}: {error['msg']}"
            for error in exc.errors()
        ]
        logger.warning(f"Invalid request to {request.url.path}: {problems}")
        return JSONResponse(
            status_code=400,
            content=_error_body(request, 400, "Invalid request: " + "; ".join(problems))
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle general exceptions"""
        logger.error(f"Unhandled exception: {str(exc)}")

        return JSONResponse(
            status_code=500,
            content=_error_body(
                request,
                500,
                "Internal server error" if settings.environment == "production" else str(exc)
            )
        )

    # Include routers
    app.include_router(health.router, tags=["Health"])
    app.include_router(oauth.router, prefix="/auth", tags=["OAuth"])
    app.include_router(auth.router, prefix="/api", tags=["Auth"])
    app.include_router(profile.router, prefix="/api", tags=["Profile"])
    app.include_router(health_metrics.router, prefix="/api", tags=["Health Metrics"])
    app.include_router(health_records.router, prefix="/api", tags=["Health Records"])
    app.include_router(chat.router, prefix="/api", tags=["Chat"])
    app.include_router(avatar.router, prefix="/api", tags=["Avatar"])
    app.include_router(stats.router, prefix="/api", tags=["Stats"])

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "message": "Karetek Telehealth API",
            "version": "1.0.0",
            "status": "running",
            "docs": "/docs" if settings.debug else "disabled",
            "health": "/health"
        }

    return app

app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "karetek.main:app",
        host="0.0.0.0",
        port=5000,
        reload=settings.debug,
        log_level="info"
    )
