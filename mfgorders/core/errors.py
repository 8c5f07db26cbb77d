"""
Domain exceptions.

Every error raised by the services carries an HTTP status so the API layer can
map it without knowing the concrete type. Handlers in ``mfgorders.main`` turn
them into ``{"error": true, "message": ..., "details": [...]}`` bodies.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional


class DomainError(Exception):
    """Base exception for all domain errors."""

    status_code = 400
    default_code = "DOMAIN_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Iterable[str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = list(details or [])

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": True, "message": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class RequestValidationFailed(DomainError):
    """Raised when input shape or values are invalid."""

    status_code = 400
    default_code = "VALIDATION_ERROR"

    def __init__(self, details: Iterable[str], message: str = "Validation failed"):
        super().__init__(message, details=details)


class NotAuthenticated(DomainError):
    status_code = 401
    default_code = "NOT_AUTHENTICATED"

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class PermissionDenied(DomainError):
    status_code = 403
    default_code = "PERMISSION_DENIED"

    def __init__(self, required_roles: Iterable[str]):
        roles = sorted(required_roles)
        super().__init__(
            "One of the following roles is required: " + ", ".join(roles),
            details=roles,
        )


class EntityNotFound(DomainError):
    """Raised when an entity looked up by id does not exist."""

    status_code = 404
    default_code = "ENTITY_NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: Any):
        super().__init__(f"{entity_type} with id '{entity_id}' not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ProductNotFound(DomainError):
    """Raised when a product search matches no finished good."""

    status_code = 404
    default_code = "PRODUCT_NOT_FOUND"

    def __init__(self, search: str):
        super().__init__(f"No finished-good product matches '{search}'")
        self.search = search


class AmbiguousProductMatch(DomainError):
    """Raised when a product search matches more than one finished good."""

    status_code = 409
    default_code = "AMBIGUOUS_MATCH"

    def __init__(self, search: str, candidates: Iterable[str]):
        names = list(candidates)
        super().__init__(
            f"'{search}' matches {len(names)} finished-good products; refine the search",
            details=names,
        )
        self.search = search


class InvalidOperation(DomainError):
    """Raised when an operation is not valid in the current state."""

    status_code = 409
    default_code = "INVALID_OPERATION"


class MissingBillOfMaterials(DomainError):
    status_code = 422
    default_code = "MISSING_BOM"

    def __init__(self, product_name: str):
        super().__init__(f"Product '{product_name}' has no active bill of materials")
        self.product_name = product_name


class PersistenceError(DomainError):
    """Raised when the storage layer fails; nothing was committed."""

    status_code = 500
    default_code = "INTERNAL_ERROR"
