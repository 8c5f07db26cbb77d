from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt, JWTError

from mfgorders.core.config import Settings
from mfgorders.core.errors import NotAuthenticated, PermissionDenied

bearer = HTTPBearer(auto_error=False)

ADMIN = "ADMIN"
MANUFACTURING_MANAGER = "MANUFACTURING_MANAGER"
PRODUCTION_OPERATOR = "PRODUCTION_OPERATOR"
INVENTORY_MANAGER = "INVENTORY_MANAGER"
ROLES = (ADMIN, MANUFACTURING_MANAGER, PRODUCTION_OPERATOR, INVENTORY_MANAGER)


@dataclass
class Principal:
    user_id: str | None = None
    username: str = "anonymous"
    roles: list[str] = field(default_factory=list)

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    def has_any_role(self, roles: Iterable[str]) -> bool:
        return bool(set(self.roles) & set(roles))


ANONYMOUS = Principal()


def create_access_token(
    settings: Settings,
    subject: str,
    roles: Iterable[str],
    email: str | None = None,
    ttl_minutes: int | None = None,
) -> str:
    now = datetime.now(timezone.utc)
    ttl = settings.jwt_ttl_min if ttl_minutes is None else ttl_minutes
    payload = {
        "iss": settings.iam_issuer,
        "aud": settings.iam_audience,
        "jti": secrets.token_urlsafe(16),
        "sub": subject,
        "email": email or subject,
        "roles": sorted(set(roles)),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=ttl)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_alg)


def decode_principal(settings: Settings, token: str) -> Principal:
    """Turn a bearer token into a principal; anything unverifiable is anonymous."""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_alg],
            audience=settings.iam_audience,
            issuer=settings.iam_issuer,
        )
    except JWTError:
        return ANONYMOUS
    user_id = payload.get("sub")
    if not user_id:
        return ANONYMOUS
    roles = [str(r) for r in (payload.get("roles") or []) if r]
    return Principal(user_id=str(user_id), username=payload.get("email") or str(user_id), roles=roles)


def get_principal(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
) -> Principal:
    if not creds or not creds.credentials:
        return ANONYMOUS
    return decode_principal(request.app.state.settings, creds.credentials)


def require_roles(*required: str) -> Callable:
    """Dependency factory: the caller must be authenticated and hold one of ``required``.

    With no roles given, any authenticated caller passes.
    """
    required_set = set(required)

    def _dep(principal: Principal = Depends(get_principal)) -> Principal:
        if not principal.is_authenticated:
            raise NotAuthenticated()
        if required_set and not principal.has_any_role(required_set):
            raise PermissionDenied(required_set)
        return principal

    return _dep
