# support_chat/main.py
import os
import time
import uuid

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from support_chat.api.dependencies import reset_services
from support_chat.api.routes import router
from support_chat.config import LOG_DIR, LOG_LEVEL
from support_chat.exceptions import SupportChatError
from support_chat.observability.logger import (
    get_logger,
    log_request_complete,
    log_request_error,
    log_request_start,
    setup_logging,
)
from support_chat.observability.metrics import metrics_tracker
from support_chat.observability.posthog_client import posthog_client

# Initialize logging FIRST
setup_logging(log_level=LOG_LEVEL, log_dir=LOG_DIR)
logger = get_logger(__name__)

app = FastAPI(
    title="Customer Support RAG Chat API",
    description="Support chat grounded in uploaded company documents",
    version="1.0.0",
)

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
    Assign a request id, log start/completion, record latency metrics.
    """

    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    log_request_start(
        logger,
        request_id,
        request.url.path,
        method=request.method,
        client_ip=request.client.host if request.client else None,
    )

    start_time = time.time()

    try:

        response = await call_next(request)

    except Exception as e:

        metrics_tracker.record_failure()

        log_request_error(
            logger,
            request_id,
            request.url.path,
            e,
            latency_seconds=round(time.time() - start_time, 3),
        )

        raise

    latency = time.time() - start_time

    if response.status_code >= 500:
        metrics_tracker.record_failure()
    else:
        metrics_tracker.record_success(latency)

    log_request_complete(
        logger,
        request_id,
        request.url.path,
        latency,
        method=request.method,
        status_code=response.status_code,
    )

    response.headers["X-Request-ID"] = request_id

    return response


app.include_router(router)


@app.on_event("startup")
async def startup_event():

    logger.info("application_startup", extra={"version": "1.0.0"})

    if not os.getenv("OPENAI_API_KEY"):

        logger.warning(
            "missing_api_key",
            extra={
                "warning_detail": "OPENAI_API_KEY not set. API calls will fail."
            },
        )


@app.on_event("shutdown")
async def shutdown_event():

    posthog_client.shutdown()

    reset_services()

    logger.info("application_shutdown")


@app.exception_handler(SupportChatError)
async def support_chat_exception_handler(request: Request, exc: SupportChatError):

    request_id = getattr(request.state, "request_id", "unknown")

    logger.warning(
        "pipeline_error",
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "error": str(exc),
            "error_type": type(exc).__name__,
        },
    )

    posthog_client.track_error(
        distinct_id=request_id,
        error_type=type(exc).__name__,
        error_message=exc.message,
        endpoint=request.url.path,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.message,
            "request_id": request_id,
            "error_type": type(exc).__name__,
        },
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
            "error_type": type(exc).__name__,
        },
        exc_info=True,
    )

    posthog_client.track_error(
        distinct_id=request_id,
        error_type=type(exc).__name__,
        error_message=str(exc),
        endpoint=request.url.path,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "An internal error occurred. Please try again.",
            "request_id": request_id,
            "error_type": type(exc).__name__,
        },
    )


@app.get("/")
async def root():

    return {
        "message": "Customer Support RAG Chat API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "metrics": "/metrics",
    }
