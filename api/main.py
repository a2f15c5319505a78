"""
FastAPI main application for the Book Management API.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from motor.motor_asyncio import AsyncIOMotorClient
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.config import config
from api.database import APIDatabaseService
from api.models import ErrorResponse, FieldError, HealthResponse
from api.routes import router
from utilities.logger import REQUEST_LOG_NAME, setup_request_log

logger = structlog.get_logger(__name__)

request_log = logging.getLogger(REQUEST_LOG_NAME)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting Book Management API")

    if config.request_log_file:
        setup_request_log(config.request_log_file)

    client = AsyncIOMotorClient(config.mongodb_url)
    try:
        database = client[config.mongodb_database]

        # Test connection
        await database.command("ping")
        logger.info("Database connection established", database=config.mongodb_database)

        db_service = APIDatabaseService(database)
        await db_service.ensure_indexes()
        app.state.db_service = db_service

    except Exception as e:
        logger.error("Failed to connect to database", error=str(e))
        client.close()
        raise

    yield

    logger.info("Shutting down Book Management API")
    app.state.db_service = None
    client.close()


app = FastAPI(
    title=config.api_title,
    description=config.api_description,
    version=config.api_version,
    docs_url="/api-docs",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=config.cors_allow_credentials,
    allow_methods=config.cors_allow_methods,
    allow_headers=config.cors_allow_headers,
)


@app.middleware("http")
async def log_request(request: Request, call_next):
    """Append timestamp, method and URL of every request to the request log."""
    url = request.url.path
    if request.url.query:
        url = f"{url}?{request.url.query}"
    request_log.info(
        "Timestamp: %s - Method: %s - URL: %s",
        datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        request.method,
        url,
    )
    return await call_next(request)


# Exception handlers
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render API errors as {message, errors?}."""
    content = ErrorResponse(message=str(exc.detail), errors=getattr(exc, "errors", None))
    return JSONResponse(
        status_code=exc.status_code,
        content=content.model_dump(exclude_none=True),
        headers=exc.headers
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Render framework-level parameter errors in the validation error shape."""
    errors = [
        FieldError(field=str(error["loc"][-1]) if error.get("loc") else "request", message=error["msg"])
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(message="Validation failed", errors=errors).model_dump(exclude_none=True)
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error("Unhandled exception", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(message="Something went wrong").model_dump(exclude_none=True)
    )


app.include_router(router)


@app.get("/", tags=["Health"])
async def root():
    """Root route; minimal payload for discovery."""
    return {"message": config.api_title}


# Health check endpoint (no authentication required)
@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(request: Request):
    """Health check endpoint."""
    db_status = "unavailable"
    db_service = getattr(request.app.state, "db_service", None)
    if db_service:
        health_info = await db_service.health_check()
        db_status = health_info.get("status", "unknown")

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        timestamp=datetime.now(timezone.utc),
        version=config.api_version,
        database_status=db_status
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level=config.log_level.lower()
    )
