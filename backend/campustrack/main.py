from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from campustrack.api.routes import (
    attendance,
    health,
    mdc,
    notifications,
    progression,
    students,
    timetable,
)
from campustrack.core.config import get_settings
from campustrack.core.exceptions import AppError, ErrorCode
from campustrack.db.bootstrap import ensure_schema
from campustrack.db.session import engine
from campustrack.schemas.common import error_response

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        ensure_schema(engine, create_missing=settings.auto_create_schema)
    except SQLAlchemyError:
        logger.exception("Database schema check failed during startup")
    yield


async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content=error_response(exc.message, exc.code))


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        message = str(errors[0].get("msg", message)).removeprefix("Value error, ")
    return JSONResponse(status_code=422, content=error_response(message, ErrorCode.VALIDATION_ERROR))


async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Unhandled database error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=error_response("An unexpected error occurred. Please try again.", ErrorCode.INTERNAL_ERROR),
    )


app = FastAPI(title=settings.project_name, lifespan=lifespan)
app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)
app.add_exception_handler(SQLAlchemyError, storage_error_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix=settings.api_prefix, tags=["health"])
app.include_router(timetable.router, prefix=f"{settings.api_prefix}/timetable", tags=["timetable"])
app.include_router(attendance.router, prefix=f"{settings.api_prefix}/attendance", tags=["attendance"])
app.include_router(students.router, prefix=settings.api_prefix, tags=["students"])
app.include_router(mdc.router, prefix=f"{settings.api_prefix}/mdc", tags=["mdc"])
app.include_router(progression.router, prefix=f"{settings.api_prefix}/progression", tags=["progression"])
app.include_router(notifications.router, prefix=settings.api_prefix, tags=["notifications"])
