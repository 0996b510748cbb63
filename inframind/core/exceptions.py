"""
Platform-wide exception hierarchy.

Services raise these kind-tagged failures and never deal in HTTP status
codes. The boundary layer (``inframind.utils.errors``) maps each ``code``
to a transport status in one place.

Usage:
    from inframind.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Analysis", resource_id=analysis_id)
    raise ValidationError("Invalid content", details={"symptoms": "..."})
"""


class InframindError(Exception):
    """Base class for every business-rule and infrastructure failure."""

    code = "ERR_INTERNAL"


class NotFoundError(InframindError):
    """Raised when a referenced analysis, task, report or user does not exist.

    Args:
        resource: Human-readable entity name (e.g. "Analysis", "Task").
        resource_id: The PK that was looked up.
    """

    code = "ERR_NOT_FOUND"

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(InframindError):
    """Raised when input is malformed, out of range or fails a content guard.

    Args:
        message: Human-readable explanation of what failed.
        details: Field-level breakdown for form rendering.
                 Keys are field names; values are error descriptions.
    """

    code = "ERR_VALIDATION"

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ForbiddenError(InframindError):
    """Raised when the actor's role or ownership does not permit the action.

    The message names the action only; it never reveals which business rule
    would have been evaluated next.
    """

    code = "ERR_FORBIDDEN"

    def __init__(self, actor_id: str | None, action: str, reason: str | None = None) -> None:
        self.actor_id = actor_id
        self.action = action
        self.reason = reason
        msg = f"User {actor_id} is not permitted to '{action}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class InvalidStateError(InframindError):
    """Raised when the requested transition is not legal from the current status."""

    code = "ERR_INVALID_STATE"

    def __init__(self, resource: str, resource_id: str, action: str, current: str,
                 reason: str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.action = action
        self.current_status = current
        msg = f"Cannot '{action}' {resource} {resource_id} (status={current})"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class ConflictError(InframindError):
    """Raised on an optimistic version mismatch or a duplicate unique value.

    Args:
        resource: Model name.
        field: The field in conflict ("version" for stale writes).
        value: The value the caller presented.
        current: The value currently stored, when known.
    """

    code = "ERR_CONFLICT"

    def __init__(self, resource: str, field: str, value=None, current=None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        self.current = current
        if field == "version":
            msg = f"{resource} was modified concurrently (presented version={value!r}"
            if current is not None:
                msg += f", current version={current!r}"
            msg += "); re-read and retry"
        else:
            msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)


class PersistenceError(InframindError):
    """Raised when the database is unreachable or a transaction fails for
    infrastructure reasons. Never used for version conflicts."""

    code = "ERR_DATABASE"
