# vehicle_monitor/main.py

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from . import config
from .auth_routes import router as auth_router
from .database import Base, SessionLocal, engine
from .detections import router as detections_router
from .exceptions import APIException
from .seed import ensure_admin_user

logger = logging.getLogger(__name__)

# Create SQLAlchemy tables
Base.metadata.create_all(bind=engine)


def bootstrap_admin():
    if not (config.ADMIN_USERNAME and config.ADMIN_PASSWORD):
        return
    db = SessionLocal()
    try:
        ensure_admin_user(db, config.ADMIN_USERNAME, config.ADMIN_PASSWORD)
    except ValueError as e:
        logger.error(f"Admin bootstrap skipped: {e}")
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    bootstrap_admin()
    yield


app = FastAPI(
    lifespan=lifespan,
    title=config.API_TITLE,
    description="Vehicle plate detection logging, review and CSV export",
    version=config.API_VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(APIException)
async def api_exception_handler(request: Request, exc: APIException):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    field = ".".join(str(p) for p in errors[0]["loc"][1:]) if errors else ""
    message = f"Invalid {field}" if field else "Invalid request"
    return JSONResponse(status_code=400, content={"message": message})


app.include_router(auth_router)
app.include_router(detections_router)
app.mount(config.UPLOAD_URL_PREFIX, StaticFiles(directory=str(config.UPLOAD_DIR)), name="uploads")


@app.get("/")
async def root():
    return {
        "message": "Vehicle Monitor API is running",
        "status": "healthy",
        "version": config.API_VERSION,
    }


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "timestamp": time.time(),
        "service": "vehicle-monitor-api",
        "version": config.API_VERSION,
    }
