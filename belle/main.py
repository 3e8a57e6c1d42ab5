"""
Main FastAPI application for the Miss Belle clinic backend.
"""

import time
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from belle.core.config import settings
from belle.core.exceptions import ClinicError
from belle.core.logging import bind_request_context, configure_logging, get_logger, request_logger
from belle.db.base import check_database_health
from belle.db.session import db_manager
from belle.api.v1 import auth, profiles, procedures, patients, appointments, cash_register, dashboard
from belle.services.auth_service import audit_session_change, session_events


# Configure logging
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting Miss Belle backend", version=settings.app_version)

    health = await check_database_health()
    if health["status"] != "healthy":
        logger.warning("Database health check failed", health=health)
    else:
        logger.info("Database connected successfully")

    unsubscribe = session_events.subscribe(audit_session_change)
    logger.info("Application startup complete")

    yield

    unsubscribe()
    await db_manager.dispose()
    logger.info("Shutting down Miss Belle backend")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Clinic management API: agenda, patients, procedures and cash register",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    openapi_url="/openapi.json" if settings.debug else None,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Accept", "Content-Type", "Authorization", "X-Requested-With", "Origin"],
    max_age=3600,
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests under a per-request id."""
    request_id = bind_request_context(request.headers.get("x-request-id"))
    start_time = time.time()

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id

    process_time = time.time() - start_time
    await request_logger.log_request(request, response, process_time)

    return response


# Global exception handlers
@app.exception_handler(ClinicError)
async def clinic_exception_handler(request: Request, exc: ClinicError):
    """Render domain errors raised by the services."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "Domain error",
        code=exc.code,
        status_code=exc.status_code,
        error=exc.message,
        path=request.url.path
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors with detailed logging."""
    error_details = jsonable_encoder(exc.errors())
    logger.warning(
        "Validation error",
        path=request.url.path,
        method=request.method,
        errors=error_details
    )
    return JSONResponse(
        status_code=422,
        content={"error": "Validation error", "status_code": 422, "detail": error_details}
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions."""
    logger.warning(
        "HTTP exception",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail, "status_code": exc.status_code}
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error(
        "Unhandled exception",
        exception=str(exc),
        path=request.url.path,
        exc_info=True
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "status_code": 500,
            "detail": str(exc) if settings.debug else "An error occurred"
        }
    )


# Health check endpoints
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    db_health = await check_database_health()
    return {
        "status": "healthy" if db_health["status"] == "healthy" else "unhealthy",
        "version": settings.app_version,
        "environment": settings.app_env,
        "database": db_health["status"],
        "timestamp": db_health["timestamp"]
    }


# API routes
app.include_router(auth.router, prefix="/api/v1/auth", tags=["Authentication"])
app.include_router(profiles.router, prefix="/api/v1/profiles", tags=["Profiles"])
app.include_router(procedures.router, prefix="/api/v1/procedures", tags=["Procedures"])
app.include_router(patients.router, prefix="/api/v1/patients", tags=["Patients"])
app.include_router(appointments.router, prefix="/api/v1/appointments", tags=["Appointments"])
app.include_router(cash_register.router, prefix="/api/v1/cash-register", tags=["Cash Register"])
app.include_router(dashboard.router, prefix="/api/v1/dashboard", tags=["Dashboard"])


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": f"Welcome to {settings.app_name} API",
        "version": settings.app_version,
        "environment": settings.app_env,
        "docs": "/docs" if settings.debug else "Documentation not available in production"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "belle.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level="info" if not settings.debug else "debug"
    )
