from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from dotenv import load_dotenv
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware
import os
import logging
from pathlib import Path

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

from database import engine, Base
from errors import TrackerError
import models  # noqa: F401  registers tables on Base.metadata
from routers.activity import router as activity_router
from routers.auth_users import router as auth_router
from routers.director import router as director_router
from routers.hod import router as hod_router
from routers.professors import router as professors_router
from routers.public import router as public_router
from routers.students import router as students_router

# Create tables
Base.metadata.create_all(bind=engine)

app = FastAPI(title="Project Tracker API", version="1.0.0")

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

APP_ENV = os.environ.get('APP_ENV', 'production').strip().lower()


def _error_body(category: str, message: str, **extra) -> dict:
    body = {"success": False, "error": category, "message": message}
    body.update({key: value for key, value in extra.items() if value is not None})
    return body


@app.exception_handler(TrackerError)
async def tracker_error_handler(request: Request, exc: TrackerError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.category, exc.message, field=exc.field),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = jsonable_encoder(exc.errors())
    first = errors[0]["msg"] if errors else "Invalid request"
    return JSONResponse(
        status_code=422,
        content=_error_body("validation_error", first, errors=errors),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body("http_error", str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    message = str(exc) if APP_ENV == 'development' else "Server Error"
    return JSONResponse(status_code=500, content=_error_body("internal_error", message))


# Include routers and add middleware
for router in (
    public_router,
    auth_router,
    students_router,
    professors_router,
    hod_router,
    director_router,
    activity_router,
):
    app.include_router(router, prefix="/api")

app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=os.environ.get('CORS_ORIGINS', '*').split(','),
    allow_methods=["*"],
    allow_headers=["*"],
)
