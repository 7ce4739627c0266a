"""
Domain error taxonomy.

Services raise these; the exception handlers registered in
``food_delivery.core.exception_handlers`` turn them into the JSON envelope.
"""
from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base class for every error a core operation may surface to the caller."""
    code = "domain_error"
    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(DomainError):
    """Malformed or missing input."""
    code = "validation_error"
    status_code = 400


class NotFound(DomainError):
    code = "not_found"
    status_code = 404


class Forbidden(DomainError):
    code = "forbidden"
    status_code = 403


class Conflict(DomainError):
    """Stale write, lost race or duplicate key."""
    code = "conflict"
    status_code = 409


class InvalidTransition(DomainError):
    code = "invalid_transition"
    status_code = 409
