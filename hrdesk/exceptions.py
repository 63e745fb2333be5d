"""Domain error kinds shared by the rule engines and the resource services.

These carry no transport objects; ``hrdesk.main`` maps them onto HTTP
responses through ``status_code`` and ``code``.
"""

from __future__ import annotations


class DomainError(Exception):
    status_code = 400
    code = "DOMAIN_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ForbiddenError(DomainError):
    status_code = 403
    code = "FORBIDDEN"


class ValidationFailed(DomainError):
    status_code = 400
    code = "VALIDATION_ERROR"


class NotFoundError(DomainError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(DomainError):
    status_code = 409
    code = "CONFLICT"
