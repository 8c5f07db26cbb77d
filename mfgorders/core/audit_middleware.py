from __future__ import annotations

import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from sqlalchemy.exc import SQLAlchemyError

from mfgorders.core.audit import audit
from mfgorders.core.context import set_request_id
from mfgorders.core.security import decode_principal

logger = logging.getLogger(__name__)


def _get_request_id(request: Request) -> str:
    rid = request.headers.get("X-Request-Id") or request.headers.get("X-Request-ID")
    if rid:
        return rid[:64]
    return str(uuid.uuid4())


def _client_ip(request: Request) -> str | None:
    # If behind a proxy/load balancer, you can trust X-Forwarded-For (configure accordingly).
    xff = request.headers.get("X-Forwarded-For")
    if xff:
        return xff.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


def _actor(request: Request) -> str:
    authz = request.headers.get("Authorization")
    if authz and authz.lower().startswith("bearer "):
        principal = decode_principal(request.app.state.settings, authz.split(" ", 1)[1].strip())
        return principal.username
    return "anonymous"


def _write_audit(request: Request, *, request_id: str, status_code: int, duration_ms: int, action: str) -> None:
    db = request.app.state.session_factory()
    try:
        audit(
            db,
            actor=_actor(request),
            action=action,
            entity_type="http",
            entity_id=request.url.path[:64],
            payload={
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
                "duration_ms": duration_ms,
            },
            request_id=request_id,
            ip_address=_client_ip(request),
            user_agent=(request.headers.get("User-Agent") or "")[:256] or None,
            status_code=status_code,
            success=200 <= status_code < 400,
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("failed to write audit record for %s %s", request.method, request.url.path)
    finally:
        db.close()


async def audit_http_middleware(request: Request, call_next: Callable) -> Response:
    """Correlation id + audit middleware.

    - Adds a correlation id (X-Request-Id) to the logging context and the response
    - Audits authorization failures (401/403) and unhandled errors
    """
    request_id = _get_request_id(request)
    set_request_id(request_id)
    start = time.perf_counter()

    try:
        response = await call_next(request)
    except Exception:
        duration_ms = int((time.perf_counter() - start) * 1000)
        logger.exception("%s %s failed after %sms", request.method, request.url.path, duration_ms)
        _write_audit(request, request_id=request_id, status_code=500, duration_ms=duration_ms, action="http.exception")
        raise

    response.headers["X-Request-Id"] = request_id
    status_code = response.status_code
    duration_ms = int((time.perf_counter() - start) * 1000)
    logger.info("%s %s -> %s (%sms)", request.method, request.url.path, status_code, duration_ms)

    if status_code in (401, 403):
        _write_audit(request, request_id=request_id, status_code=status_code, duration_ms=duration_ms, action="http.denied")

    return response
