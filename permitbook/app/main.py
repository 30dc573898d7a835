"""
FastAPI Application Entry Point.

This is the main application file for the Permit Book service.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from permitbook.app.core.config import settings
from permitbook.app.api.v1.router import router as api_v1_router
from permitbook.app.core.observability import ObservabilityMiddleware, configure_logging
from permitbook.app.db.session import engine, Base
from permitbook.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from permitbook.app.models.membership import Membership
from permitbook.app.models.audit_log import AuditLog
from permitbook.app.models.truck import Truck, TruckOtherPermit
from permitbook.app.models.trailer import Trailer, TrailerCompartment
from permitbook.app.models.equipment_combo import EquipmentCombo  # after trucks/trailers for FK
from permitbook.app.models.driver_profile import DriverProfile, DriverLicense, MedicalCard, TwicCard, PortId
from permitbook.app.models.terminal import Terminal, TerminalAccess
from permitbook.app.models.load_record import LoadRecord


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Configures logging.
    2. Creates database tables on startup.
    """
    configure_logging()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Fleet equipment coupling and permit book compliance backend",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status and application information
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.

    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to the Permit Book API",
        "docs": "/docs",
        "health": "/health",
    }
