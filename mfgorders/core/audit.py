from __future__ import annotations

import json
from typing import Any

from sqlalchemy.orm import Session

from mfgorders.core.context import get_request_id
from mfgorders.db.models.security_audit import AuditLog


def audit(
    db: Session,
    *,
    actor: str,
    action: str,
    entity_type: str,
    entity_id: str | None = None,
    payload: dict | None = None,
    request_id: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    status_code: int | None = None,
    success: bool = True,
) -> AuditLog:
    """Stage an append-only audit record on the caller's session.

    The caller owns the transaction, so the audit row commits (or rolls back)
    together with the change it describes.
    """
    safe_payload: dict[str, Any] = payload or {}
    try:
        json.dumps(safe_payload)
    except (TypeError, ValueError):
        safe_payload = json.loads(json.dumps(safe_payload, default=str))

    row = AuditLog(
        actor=actor,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        request_id=request_id or get_request_id(),
        ip_address=ip_address,
        user_agent=user_agent,
        status_code=status_code,
        success=success,
        payload=safe_payload,
    )
    db.add(row)
    return row
