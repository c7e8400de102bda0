import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import get_settings
from .core.logging import setup_logging
from .crud import CRUDError
from .database import create_tables
from .exceptions import ClinicError, Internal, ValidationFailed
from .routers import (
    auth, messages, chatbot, patients, dialysis, appointments, prescriptions,
    medications, vitals, records, reports, health,
)

settings = get_settings()
setup_logging(json_output=settings.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_tables()
    logger.info(f"{settings.app_name} {settings.app_version} started ({settings.environment})")
    yield


app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


# ==================== ERROR HANDLERS ====================
@app.exception_handler(ClinicError)
async def clinic_error_handler(request: Request, exc: ClinicError):
    return JSONResponse(status_code=exc.status_code, content=exc.body())

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    fields = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg", "Invalid value"),
        }
        for error in exc.errors()
    ]
    error = ValidationFailed(fields)
    return JSONResponse(status_code=error.status_code, content=error.body())

@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )

@app.exception_handler(CRUDError)
async def crud_error_handler(request: Request, exc: CRUDError):
    logger.error(f"Data store failure on {request.method} {request.url.path}: {exc}")
    error = Internal()
    return JSONResponse(status_code=error.status_code, content=error.body())

@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    error = Internal()
    return JSONResponse(status_code=error.status_code, content=error.body())


app.include_router(auth.router, prefix="/api")
app.include_router(messages.router, prefix="/api")
app.include_router(chatbot.router, prefix="/api")
app.include_router(patients.router, prefix="/api")
app.include_router(dialysis.router, prefix="/api")
app.include_router(appointments.router, prefix="/api")
app.include_router(prescriptions.router, prefix="/api")
app.include_router(medications.router, prefix="/api")
app.include_router(vitals.router, prefix="/api")
app.include_router(records.router, prefix="/api")
app.include_router(reports.router, prefix="/api")
app.include_router(health.router, prefix="/api")


if __name__ == "__main__":
    uvicorn.run("kidneycare.main:app", host="0.0.0.0", port=8000, reload=settings.is_development)
