# docmemory/main.py
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
import os
import time
import uuid

from typing import Optional

from docmemory import __version__
from docmemory.api.routes import router
from docmemory.config import load_settings
from docmemory.context import ServiceContext, build_context
from docmemory.errors import DocMemoryError
from docmemory.models import ErrorResponse
from docmemory.observability.logger import setup_logging, get_logger
from docmemory.observability.metrics import MetricsTracker
from docmemory.observability.posthog_client import posthog_client

# Initialize logging FIRST
setup_logging(
    log_level=os.getenv("LOG_LEVEL", "INFO"),
    log_file=os.getenv("LOG_FILE"),
)
logger = get_logger(__name__)


def _error_body(request: Request, message: str, error_code: str) -> dict:

    return ErrorResponse(
        detail=message,
        error_code=error_code,
        request_id=getattr(request.state, "request_id", "unknown"),
    ).model_dump()


def create_app(context: Optional[ServiceContext] = None) -> FastAPI:
    """
    Build the API application.

    When no context is given, settings are loaded and the context is built
    at startup; missing configuration stops the process there.
    """

    app = FastAPI(
        title="Document Memory API",
        description="PDF ingestion, vector memory, RAG queries and summarization",
        version=__version__,
    )

    app.state.context = context
    app.state.metrics = MetricsTracker()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """
        Log every HTTP request with latency and record request metrics.
        """

        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        logger.info(
            "request_started",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "client_ip": request.client.host if request.client else None
            }
        )

        start_time = time.time()

        try:

            response = await call_next(request)

        except Exception as e:

            app.state.metrics.record_failure()

            logger.error(
                "request_failed",
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "latency_seconds": round(time.time() - start_time, 3),
                    "error": str(e),
                    "error_type": type(e).__name__
                },
                exc_info=True
            )

            raise

        latency = time.time() - start_time

        if response.status_code >= 500:
            app.state.metrics.record_failure()
        else:
            app.state.metrics.record_success(latency)

        logger.info(
            "request_completed",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "latency_seconds": round(latency, 3)
            }
        )

        return response

    app.include_router(router)

    @app.on_event("startup")
    async def startup_event():

        if app.state.context is None:

            settings = load_settings()

            setup_logging(log_level=settings.log_level, log_file=settings.log_file)

            app.state.context = build_context(settings)

        logger.info("application_startup", extra={"version": __version__})

    @app.on_event("shutdown")
    async def shutdown_event():

        if app.state.context is not None:
            app.state.context.documents.close()

        logger.info("application_shutdown")

    @app.exception_handler(DocMemoryError)
    async def service_error_handler(request: Request, exc: DocMemoryError):

        log = logger.error if exc.status_code >= 500 else logger.info

        log(
            "request_rejected",
            extra={
                "request_id": getattr(request.state, "request_id", "unknown"),
                "path": request.url.path,
                "error_code": exc.error_code,
                "error": exc.message,
            }
        )

        if exc.status_code >= 500:
            posthog_client.track_error(
                distinct_id=getattr(request.state, "request_id", "unknown"),
                error_type=type(exc).__name__,
                error_message=exc.message,
                endpoint=request.url.path,
            )

        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.message, exc.error_code),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):

        # Schema failures share the 400 contract of missing fields
        fields = [
            ".".join(str(part) for part in error.get("loc", ())[1:])
            for error in exc.errors()
        ]

        logger.info(
            "request_rejected",
            extra={
                "request_id": getattr(request.state, "request_id", "unknown"),
                "path": request.url.path,
                "error_code": "validation_error",
                "fields": fields,
            }
        )

        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_error_body(
                request,
                "Invalid request body: " + ", ".join(f for f in fields if f),
                "validation_error",
            ),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):

        request_id = getattr(request.state, "request_id", "unknown")

        logger.error(
            "unhandled_exception",
            extra={
                "request_id": request_id,
                "path": request.url.path,
                "error": str(exc),
                "error_type": type(exc).__name__
            },
            exc_info=True
        )

        posthog_client.track_error(
            distinct_id=request_id,
            error_type=type(exc).__name__,
            error_message=str(exc),
            endpoint=request.url.path,
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(
                request,
                "An internal error occurred. Please try again.",
                "internal_error",
            ),
        )

    @app.get("/")
    async def root():

        return {
            "message": "Document Memory API",
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
            "metrics": "/metrics"
        }

    @app.get("/metrics")
    async def get_metrics():

        return app.state.metrics.get_metrics()

    return app


app = create_app()
