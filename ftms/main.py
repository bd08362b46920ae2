"""
FTMS ledger and reconciliation service — FastAPI application.

This is the entry point for the application.
All routers are registered here.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ftms.config import get_settings
from ftms.logging_config import configure_logging, get_logger
from ftms.api.health import router as health_router
from ftms.api.chart_of_accounts import router as chart_of_accounts_router
from ftms.api.journal_entries import router as journal_entries_router
from ftms.api.revenues import router as revenues_router
from ftms.api.bus_trips import router as bus_trips_router
from ftms.api.expenses import router as expenses_router
from ftms.api.employees import router as employees_router

settings = get_settings()
configure_logging(level=settings.LOG_LEVEL, fmt=settings.LOG_FORMAT)
logger = get_logger(__name__)

# Swagger UI, ReDoc and the OpenAPI document 404 unless enabled
docs_enabled = settings.ENABLE_API_DOCS

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Ledger, revenue reconciliation and reimbursement workflow for FTMS",
    docs_url="/docs" if docs_enabled else None,
    redoc_url="/redoc" if docs_enabled else None,
    openapi_url="/openapi.json" if docs_enabled else None,
)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(
        "unhandled error",
        exc_info=exc,
        extra={"method": request.method, "path": request.url.path},
    )
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# Register routers
app.include_router(health_router)
app.include_router(chart_of_accounts_router)
app.include_router(journal_entries_router)
app.include_router(revenues_router)
app.include_router(bus_trips_router)
app.include_router(expenses_router)
app.include_router(employees_router)
