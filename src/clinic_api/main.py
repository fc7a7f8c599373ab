import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from clinic_api.config import settings
from clinic_api.exceptions import (
    ClinicSchedulerException,
    clinic_scheduler_exception_handler,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from clinic_api.routers import scheduler
from clinic_api.sessions import get_sessions, session_time_range


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
    logger = logging.getLogger(__name__)
    logger.info("🚀 Clinic scheduler starting up...")

    # Log configuration info
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Host: {settings.host}, Port: {settings.port}")
    logger.info(f"Debug mode: {settings.debug}")
    logger.info(
        f"Default breaks: patient {settings.patient_break_minutes} min, "
        f"doctor {settings.doctor_break_minutes} min"
    )
    for session in get_sessions().values():
        logger.info(f"Session {session.name}: {session_time_range(session)}")

    logger.info("✅ Clinic scheduler startup complete")
    yield
    # Shutdown
    logger.info("🔄 Clinic scheduler shutting down...")


# Initialize FastAPI app
app = FastAPI(
    title=settings.api_title,
    description=settings.api_description,
    version=settings.api_version,
    lifespan=lifespan,
)

# Add exception handlers
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(ClinicSchedulerException, clinic_scheduler_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

# Include API routers
app.include_router(scheduler.router, prefix="/api")


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return JSONResponse({"status": "healthy", "message": "OK"})


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with API information"""
    return JSONResponse({"message": settings.api_title, "status": "active"})


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "clinic_api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
