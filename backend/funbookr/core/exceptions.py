"""
Domain error taxonomy.

Entity methods raise these before mutating anything. The API layer maps
them to HTTP responses in funbookr.main.
"""


class DomainError(Exception):
    """Base class for all booking-core errors."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class DomainValidationError(DomainError, ValueError):
    """Malformed input to a factory or update method."""

    status_code = 422


class InvalidStateError(DomainError):
    """Operation attempted in a status that forbids it."""

    status_code = 409


class BusinessRuleError(DomainError):
    """Input is well-formed but breaks a pricing, refund or points rule."""

    status_code = 400
