import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from api.manager_routes import router as manager_router
from api.site_routes import router as site_router
from api.time_routes import router as time_router
from api.worker_routes import router as worker_router
from core import config
from core.errors import AttendanceError
from db.session import create_db_and_tables, engine

# Configure logging
logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
logger = logging.getLogger(__name__)

# Construct the list of allowed origins, always including both dev and production
allowed_origins_list = [
    config.DEV_DOMAIN,
    config.PRODUCTION_DOMAIN,
    "http://localhost:3000",  # Additional fallback for React dev
    "http://127.0.0.1:5173",  # Additional fallback for Vite dev
]
allowed_origins_list = sorted(set(origin for origin in allowed_origins_list if origin))


# When We Start, Create the DB Tables if they don't exist
@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables(engine)
    logger.info("CORS: allowing origins %s", allowed_origins_list)
    yield


app = FastAPI(title="Care Attendance", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Expected attendance failures go back to the caller as structured results
@app.exception_handler(AttendanceError)
async def attendance_error_handler(request: Request, exc: AttendanceError):
    logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


# Storage faults are logged and surfaced without internal detail
@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Storage failure on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "INTERNAL_ERROR", "message": "Could not complete the request."},
    )


app.include_router(time_router, prefix="/time", tags=["Time"])
app.include_router(site_router, prefix="/sites", tags=["Sites", "Geofence"])
app.include_router(manager_router, prefix="/manager", tags=["Manager"])
app.include_router(worker_router, prefix="/workers", tags=["Workers"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=os.getenv("APP_HOST", "127.0.0.1"),
        port=int(os.getenv("APP_PORT", "8000")),
        reload=os.getenv("APP_RELOAD", "True").lower() in ("true", "1", "t"),
        log_level=config.LOG_LEVEL.lower(),
    )
