from __future__ import annotations
import contextvars

_request_id: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")

def set_request_id(request_id: str | None) -> None:
    _request_id.set(request_id or "-")

def get_request_id() -> str:
    return _request_id.get()
