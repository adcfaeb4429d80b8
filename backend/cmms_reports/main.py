"""
CMMS Reports API - Main Application Entry Point
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cmms_reports.core.config import get_settings
from cmms_reports.core.database import init_db
from cmms_reports.core.exceptions import DataStoreError, ReportError
from cmms_reports.api.v1.router import api_router

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.DEBUG else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler for startup and shutdown events.
    """
    logger.info("Starting CMMS Reports API...")

    await init_db()
    logger.info("Database initialized")

    yield

    logger.info("Shutting down CMMS Reports API...")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="""
    ## CMMS Reports

    Saved report definitions and on-demand execution against maintenance data:

    * **Data sources** - Work orders, assets, inventory, PM schedules and users
    * **Report builder** - Column selection, filters, sorting, grouping and aggregations
    * **Execution** - Paginated rows plus aggregation summaries for charts
    * **Export** - CSV, JSON, Excel and PDF

    ### Identity

    The calling user is identified by the `X-User-Id` header set by the gateway.
    """,
    openapi_url="/api/v1/openapi.json",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Include API router
app.include_router(api_router, prefix="/api/v1")


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": settings.APP_VERSION}


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs_url": "/api/docs",
        "openapi_url": "/api/v1/openapi.json",
    }


@app.exception_handler(ReportError)
async def report_error_handler(request: Request, exc: ReportError):
    """Report configuration and execution errors."""
    if isinstance(exc, DataStoreError):
        logger.error(f"Data store error on {request.url.path}: {exc.message}")
    else:
        logger.info(f"Rejected report request on {request.url.path}: {exc.error_code} {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler for unhandled errors."""
    logger.error(f"Unhandled error: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "cmms_reports.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
