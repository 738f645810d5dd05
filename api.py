"""
MoodPulse FastAPI Application

Main entry point for the MoodPulse API: the carrier webhook, insight
generation and check-in dispatch.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Common library imports
from common.database import MongoDB
from common.utils import success_response, error_response
from common.utils.exceptions import APIException

# App-specific imports
from moodpulse import __version__
from moodpulse.config import get_settings

# Import routers
from moodpulse.routers import (
    webhook_router,
    insights_router,
    dispatch_router,
)

# Import service initialization
from moodpulse.dependencies import (
    init_all_services,
    ensure_all_indexes,
    close_all_services,
    get_followup_queue,
)

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# =============================================================================
# Database Instance
# =============================================================================
main_db = MongoDB()


# =============================================================================
# Application Lifespan
# =============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Connects the database, builds services, creates indexes and runs the
    follow-up queue for the lifetime of the process.
    """
    # Startup
    logger.info("Starting MoodPulse API...")

    await main_db.connect(
        uri=settings.MONGODB_URI,
        database_name=settings.MONGODB_DATABASE,
    )

    init_all_services(db=main_db.db, settings=settings)
    await ensure_all_indexes()

    followups = get_followup_queue()
    followups.start()

    logger.info("MoodPulse API started successfully!")

    yield

    # Shutdown
    logger.info("Shutting down MoodPulse API...")
    await followups.stop()
    await close_all_services()
    await main_db.disconnect()
    logger.info("MoodPulse API shut down complete.")


# =============================================================================
# FastAPI Application
# =============================================================================
app = FastAPI(
    title="MoodPulse API",
    description="Employee wellbeing check-ins over WhatsApp with rule and AI insights",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.is_development() else None,
    redoc_url="/redoc" if settings.is_development() else None,
)

# =============================================================================
# CORS Middleware
# =============================================================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Error Envelope
# =============================================================================
@app.exception_handler(APIException)
async def api_exception_handler(request: Request, exc: APIException):
    """Render coded API errors in the standard error envelope."""
    detail = exc.detail if isinstance(exc.detail, dict) else {"message": str(exc.detail)}
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(
            message=detail.get("message", "Error"),
            code=detail.get("code"),
            details=detail.get("details"),
        ),
        headers=exc.headers,
    )


# =============================================================================
# Include Routers (all under /api/v1 prefix)
# =============================================================================
API_PREFIX = "/api/v1"

app.include_router(webhook_router, prefix=API_PREFIX, tags=["Webhooks"])
app.include_router(insights_router, prefix=API_PREFIX, tags=["Insights"])
app.include_router(dispatch_router, prefix=API_PREFIX, tags=["Check-ins"])


# =============================================================================
# Health Check Endpoint
# =============================================================================
@app.get("/health", tags=["Health"])
async def health():
    """
    Health check endpoint.

    Returns the status of the API and database connection.
    """
    return success_response({
        "status": "ok",
        "version": __version__,
        "database": main_db.is_connected,
    })


# =============================================================================
# Run with Uvicorn
# =============================================================================
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.is_development(),
    )
