"""
Platform-wide exception hierarchy.

Services raise these types; ``create_app`` registers one handler per type
so every blueprint maps them to the same HTTP status and error code.

The two failure classes the UI must tell apart are kept distinct:
``NotAuthenticatedError`` ("please log in") and
``BackingStoreUnavailableError`` ("temporarily unavailable, try again").

Usage:
    from obraqms.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Record", resource_id="abc")
    raise ValidationError("Unknown record type", details={"type": "foo"})
"""


class NotAuthenticatedError(Exception):
    """Raised by write entry points when no acting user is in context.

    Maps to HTTP 401.
    """

    def __init__(self, message: str = "User not authenticated") -> None:
        super().__init__(message)


class BackingStoreUnavailableError(Exception):
    """Raised when the persistence dependency is not configured or unreachable.

    Maps to HTTP 503.

    Args:
        message: Human-readable explanation.
        transient: True for connection-level failures (safe to retry reads
            with backoff); False when the store is simply not configured.
    """

    def __init__(self, message: str = "Backing store unavailable", transient: bool = False) -> None:
        self.transient = transient
        super().__init__(message)


class NotFoundError(Exception):
    """Raised when a requested resource does not exist.

    Maps to HTTP 404.

    Args:
        resource: Human-readable model/entity name (e.g. "Record").
        resource_id: The key that was looked up.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input is well-formed but violates a business rule.

    Maps to HTTP 422.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would duplicate an existing unique entity.

    Maps to HTTP 409.

    Args:
        resource: Model name.
        field: The unique field (or field group) that would be duplicated.
        value: The conflicting value.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)
