from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

import config
from database import check_connection, init_db
from routers import invoices_router, webhooks_router
from routers.common import error_envelope
from services.exceptions import ServiceError
from utils.logging_config import configure_logging, get_logger

configure_logging()
logger = get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    if config.INIT_DB_ON_STARTUP:
        init_db()
        logger.info("Database tables ensured")
    yield


# App instance
app = FastAPI(
    title="Studio Booking Payments API",
    version="1.0.0",
    description="Xendit invoice proxy and payment callback reconciliation for studio bookings",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["*"],
)


# Request logging
@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info(f"REQUEST: {request.method} {request.url.path}")
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"ERROR: {request.url.path} -> {e}")
        raise
    logger.info(f"RESPONSE: {response.status_code} {request.url.path}")
    return response


# Error envelopes
@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.error(f"{exc.error_code} on {request.url.path}: {exc.message}")
    else:
        logger.warning(f"{exc.error_code} on {request.url.path}: {exc.message}")
    return error_envelope(exc.message, exc.error_code, exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if any(err.get("type") == "json_invalid" for err in errors):
        return error_envelope("Invalid JSON format in request body", "INVALID_JSON", 400)
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"Invalid request body: {field + ' - ' if field else ''}{first.get('msg', 'validation failed')}"
    return error_envelope(message, "VALIDATION_ERROR", 400)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 405:
        return error_envelope("Method not allowed. Use POST method.", "METHOD_NOT_ALLOWED", 405)
    if exc.status_code == 404:
        return error_envelope("Endpoint not found", "NOT_FOUND", 404)
    return error_envelope(str(exc.detail), "HTTP_ERROR", exc.status_code)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.url.path}: {exc}")
    return error_envelope("Internal server error", "INTERNAL_SERVER_ERROR", 500)


app.include_router(invoices_router)
app.include_router(webhooks_router)


@app.get("/", tags=["Root"])
def root():
    return {
        "message": "Studio booking payments backend running",
        "database": "ok" if check_connection() else "unavailable",
    }


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000)
