"""Main FastAPI application."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from cnc_admin.config import get_settings
from cnc_admin.database import async_session_maker, engine
from cnc_admin.api import (
    admin_auth_router,
    admin_users_router,
    signup_requests_router,
    service_requests_router,
    feedback_router,
)
from cnc_admin.schemas.common import ErrorResponse
from cnc_admin.services.seed import seed_all

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, PATCH, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


class PreflightMiddleware:
    """Answer every OPTIONS request with 200 and permissive CORS headers."""

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] == "http" and scope["method"] == "OPTIONS":
            response = Response(status_code=status.HTTP_200_OK, headers=CORS_HEADERS)
            await response(scope, receive, send)
            return
        await self.app(scope, receive, send)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting CNC admin service...")

    if settings.auto_seed:
        async with async_session_maker() as db:
            await seed_all(db)

    yield

    logger.info("Shutting down...")
    await engine.dispose()
    logger.info("Shutdown complete")


app = FastAPI(
    title="CNC Admin - Back Office API",
    description="""
## Back office for the CNC public site

### Features
- **Sessions**: Opaque bearer tokens stored server side with a fixed lifetime
- **Permissions**: Role defaults with per-user grants and revocations
- **Users**: Account management with super admin protection
- **Signup Requests**: Public applications reviewed by super admins
- **Service Requests**: Intake from offering pages, triage and comments
- **Feedback**: Page ratings and analytics
- **Audit Log**: Best-effort record of administrative actions
    """,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

origins = settings.cors_origins_list
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials="*" not in origins,
    allow_methods=["*"],
    allow_headers=["*"],
)
# Added last so it wraps CORSMiddleware
app.add_middleware(PreflightMiddleware)


def error_body(message: str, error: str = None) -> dict:
    return ErrorResponse(message=message, error=error).model_dump(exclude_none=True)


def describe_validation_error(error: dict) -> str:
    """One readable sentence naming the offending field."""
    if error["type"] == "json_invalid":
        return "Invalid JSON body"
    field = ".".join(str(part) for part in error["loc"] if part not in ("body", "query", "header"))
    if not field:
        return "Request body is required"
    if error["type"] == "missing":
        return f"{field} is required"

    message = error["msg"]
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    if field.split(".")[-1].lower() in message.lower():
        return message
    return f"{field}: {message}"


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render HTTP errors, including routing 404/405, in the response envelope."""
    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        message = "Method not allowed"
    elif exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        message = "Not found"
    else:
        message = str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message, getattr(exc, "error_code", None)),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed input is a 400 naming the first bad field."""
    errors = exc.errors()
    message = describe_validation_error(errors[0]) if errors else "Invalid request"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(message),
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    """Database failures surface their raw message."""
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Database error", str(exc)),
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle uncaught exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Internal server error", str(exc)),
    )


# Include routers
app.include_router(admin_auth_router)
app.include_router(admin_users_router)
app.include_router(signup_requests_router)
app.include_router(service_requests_router)
app.include_router(feedback_router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "environment": settings.environment,
    }


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "CNC Admin API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("cnc_admin.main:app", host="0.0.0.0", port=8000, reload=True)
