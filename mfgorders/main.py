from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from mfgorders.core.audit_middleware import audit_http_middleware
from mfgorders.core.config import Settings, get_settings
from mfgorders.core.errors import DomainError
from mfgorders.core.logging_config import configure_logging
from mfgorders.db.base import Base
from mfgorders.db.session import build_engine, build_session_factory

# Register models
from mfgorders.db import models  # noqa: F401

from mfgorders.services.catalog.api import router as catalog_router
from mfgorders.services.manufacturing.api import router as manufacturing_router

logger = logging.getLogger(__name__)


def _field_name(loc) -> str:
    # ("body", "quantity") -> "quantity"; ("query", "page") -> "page"
    parts = [str(p) for p in loc if p not in ("body", "query", "path", "header")]
    return ".".join(parts) or "body"


async def _domain_error(request: Request, exc: DomainError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [f"{_field_name(e.get('loc', ()))}: {e.get('msg')}" for e in exc.errors()]
    return JSONResponse(
        status_code=400,
        content={"error": True, "message": "Validation failed", "code": "VALIDATION_ERROR", "details": details},
    )


async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": True, "message": str(exc.detail)})


async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": True, "message": "Internal server error"})


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Manufacturing Orders")
    app.state.settings = settings
    app.state.engine = build_engine(settings.database_url)
    app.state.session_factory = build_session_factory(app.state.engine)

    if settings.create_schema:
        # Dev-friendly schema creation (migrations are available for real upgrades)
        Base.metadata.create_all(bind=app.state.engine)

    @app.middleware("http")
    async def _audit(request, call_next):
        return await audit_http_middleware(request, call_next)

    app.add_exception_handler(DomainError, _domain_error)
    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(Exception, _unhandled_error)

    app.include_router(catalog_router)
    app.include_router(manufacturing_router)

    @app.get("/health")
    def health():
        return {"ok": True}

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("mfgorders.main:create_app", factory=True, host="0.0.0.0", port=8000)
