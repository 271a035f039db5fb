# schoolhub/main.py - FastAPI application, middleware and router registration
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from http import HTTPStatus
import logging
import traceback
import time

from schoolhub.core.config import settings
from schoolhub.core.db import get_engine, health_check as db_health_check
from schoolhub.core.logging_config import setup_logging
from schoolhub.models import Base
from schoolhub.api.routers import auth, tenants, branches, classes, sections, students, period_slots
from schoolhub.api.routers import student_attendance, attendance_reports, staff_attendance, timetables

setup_logging()
logger = logging.getLogger(__name__)

PROBLEM_JSON = "application/problem+json"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info(f"Starting {settings.API_TITLE}...")
    logger.info(f"Environment: {settings.ENV}")
    logger.info(f"Database URL: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else 'local'}")

    # Migrations own the schema; create_all is only a dev convenience
    if settings.DATABASE_AUTO_CREATE or settings.is_development:
        logger.info("Creating database tables...")
        try:
            Base.metadata.create_all(bind=get_engine())
            logger.info("Database tables created successfully")
        except Exception as e:
            logger.error(f"Error creating tables: {e}")
            raise

    yield

    logger.info(f"Shutting down {settings.API_TITLE}...")


app = FastAPI(
    title=settings.API_TITLE,
    description="Multi-tenant school management API with student attendance tracking",
    version=settings.API_VERSION,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log each request with its status and process time"""
    start_time = time.time()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"Error processing {request.method} {request.url.path}: {str(e)}")
        raise

    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = f"{process_time:.3f}"
    if settings.LOG_REQUESTS:
        logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({process_time:.3f}s)")
    return response


app.add_middleware(CORSMiddleware, **settings.get_cors_config())


def problem_response(request: Request, status_code: int, detail, headers=None) -> JSONResponse:
    """RFC 7807 problem document"""
    try:
        title = HTTPStatus(status_code).phrase
    except ValueError:
        title = "Error"
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder({
            "type": "about:blank",
            "title": title,
            "status": status_code,
            "detail": detail,
            "instance": request.url.path,
        }),
        media_type=PROBLEM_JSON,
        headers=headers,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
    return problem_response(request, exc.status_code, exc.detail, getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return problem_response(request, 422, exc.errors())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle uncaught exceptions"""
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {str(exc)}")
    logger.error(traceback.format_exc())

    detail = str(exc) if settings.is_development else "Internal server error"
    return problem_response(request, 500, detail)


@app.get("/health")
async def health_check():
    database = db_health_check()
    return {
        "status": "healthy" if database.get("status") in ("healthy", "disabled") else "degraded",
        "environment": settings.ENV,
        "version": settings.API_VERSION,
        "database": database,
    }


logger.info("Registering API routers...")
prefix = settings.API_PREFIX
app.include_router(auth.router, prefix=f"{prefix}/auth", tags=["Authentication"])
app.include_router(tenants.router, prefix=f"{prefix}/tenants", tags=["Tenants"])
app.include_router(branches.router, prefix=f"{prefix}/branches", tags=["Branches"])
app.include_router(classes.router, prefix=f"{prefix}/classes", tags=["Classes"])
app.include_router(sections.router, prefix=f"{prefix}/sections", tags=["Sections"])
app.include_router(students.router, prefix=f"{prefix}/students", tags=["Students"])
app.include_router(period_slots.router, prefix=f"{prefix}/period-slots", tags=["Period Slots"])
# Reports before the attendance router so /reports is not read as an attendance id
app.include_router(attendance_reports.router, prefix=f"{prefix}/student-attendance/reports", tags=["Attendance Reports"])
app.include_router(student_attendance.router, prefix=f"{prefix}/student-attendance", tags=["Student Attendance"])
app.include_router(staff_attendance.router, prefix=f"{prefix}/attendance", tags=["Staff Attendance"])
app.include_router(timetables.router, prefix=f"{prefix}/timetables", tags=["Timetables"])
logger.info("All routers registered successfully")


@app.get("/")
async def root():
    return {
        "message": settings.API_TITLE,
        "version": settings.API_VERSION,
        "docs_url": "/docs" if settings.is_development else "Documentation disabled in production",
    }
