"""
Engagement Monitor Service - FastAPI Application
"""
import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from .api import router as monitor_router
from .config import settings
from .utils.logging import setup_logging

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    description="Lesson attention monitoring, completion tracking, proctored assessments and quotas",
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None
)


# ============================================================================
# Request Logging Middleware
# ============================================================================

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming requests with timing."""
    start = time.time()
    method = request.method
    path = request.url.path

    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"Request failed: {method} {path} - {e}")
        raise

    duration_ms = int((time.time() - start) * 1000)
    if path not in ["/health", "/favicon.ico"]:
        logger.info(f"{method} {path} -> {response.status_code} in {duration_ms}ms")
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(monitor_router)


@app.on_event("startup")
async def startup_event():
    setup_logging(level=settings.LOG_LEVEL, log_file=settings.LOG_FILE)
    logger.info(
        f"{settings.APP_NAME} starting (quota backend={settings.QUOTA_BACKEND}, "
        f"completion threshold={settings.COMPLETION_THRESHOLD_PERCENT}%)"
    )


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": "1.0.0"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8002)
