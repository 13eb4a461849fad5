"""Application error taxonomy.

Every error raised by the catalog, ledger and sync services derives from
:class:`AppError`, which carries a stable machine-readable ``code`` and an
HTTP-like ``status_code`` so whatever boundary layer sits on top can map
it to a response without inspecting the message.
"""

from decimal import Decimal
from typing import Any


class AppError(Exception):
    """Base class for all application errors."""

    def __init__(
        self,
        message: str,
        code: str = "APP_ERROR",
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the ``{"code", "message", "details"}`` error envelope."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(AppError):
    """Malformed or out-of-range input.

    ``errors`` maps each offending field to a human-readable message.
    """

    def __init__(
        self,
        message: str,
        errors: dict[str, str] | None = None,
        code: str = "VALIDATION_ERROR",
    ):
        self.errors = dict(errors or {})
        super().__init__(message, code, 400, {"errors": self.errors})


class InvalidIdentifierError(ValidationError):
    """An instrument identifier is empty or malformed."""

    def __init__(self, message: str = "Invalid instrument identifier", field: str = "isin"):
        super().__init__(message, {field: message}, code="INVALID_IDENTIFIER")


class NotFoundError(AppError):
    """A referenced exchange, instrument, listing, portfolio or transaction is absent."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, "NOT_FOUND", 404, details)


class ForbiddenError(AppError):
    """The caller does not own the resource."""

    def __init__(self, message: str = "Forbidden", details: dict[str, Any] | None = None):
        super().__init__(message, "FORBIDDEN", 403, details)


class InsufficientQuantityError(AppError):
    """A SELL asks for more units than are held at its position in the ledger."""

    def __init__(self, available: Decimal, requested: Decimal):
        self.available = available
        self.requested = requested
        super().__init__(
            f"Cannot sell {requested} units; only {available} available",
            "INSUFFICIENT_QUANTITY",
            400,
            {"available": str(available), "requested": str(requested)},
        )


class ExternalServiceError(AppError):
    """An external data feed is unreachable or answered with an error."""

    def __init__(
        self,
        source: str,
        message: str = "External service unavailable",
        details: dict[str, Any] | None = None,
    ):
        self.source = source
        code = f"{source.upper().replace(' ', '_')}_UNAVAILABLE" if source else "EXTERNAL_SERVICE_UNAVAILABLE"
        super().__init__(message, code, 503, details)
