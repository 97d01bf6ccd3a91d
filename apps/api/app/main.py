"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from app.core.config import settings
from app.core.structured_logging import build_log_context, configure_logging
from app.db.session import engine
from app.services.errors import DependencyError, NotFoundError, ValidationError

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="Team Types API",
    description="Team-defined types and custom fields for CRM contacts, companies and employees",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
)

# CORS middleware - must be added before routers
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
)

# ============================================================================
# Service errors
# ============================================================================


async def _validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": exc.message, "errors": exc.errors})


async def _not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": exc.message})


async def _dependency_error_handler(request: Request, exc: DependencyError) -> JSONResponse:
    logger.info(
        "Delete blocked: %s",
        exc.reason,
        extra=build_log_context(route=request.url.path, method=request.method),
    )
    return JSONResponse(status_code=409, content={"detail": exc.reason})


app.add_exception_handler(ValidationError, _validation_error_handler)
app.add_exception_handler(NotFoundError, _not_found_handler)
app.add_exception_handler(DependencyError, _dependency_error_handler)

# ============================================================================
# Routers
# ============================================================================

from app.routers import custom_fields, entities, team_types, type_templates

app.include_router(team_types.router)
app.include_router(custom_fields.router)
app.include_router(entities.router)
app.include_router(type_templates.router)


@app.get("/health")
def health():
    """
    Health check endpoint.

    Verifies database connectivity and returns environment info.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
