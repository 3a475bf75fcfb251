"""
Platform-wide exception hierarchy.

Services raise these; the application-level error handlers registered in
``proflow.create_app`` translate them into the standard JSON error body
(see ``proflow.utils.errors``). Blueprints never build error responses for
business-rule failures themselves.

Usage:
    from proflow.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Project", resource_id=42)
    raise ValidationError("Title is required", details={"title": "required"})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist within the caller's company.

    Security note: used for BOTH genuinely missing records AND cross-company
    access attempts. A 403 would confirm the resource exists; a 404 does not.

    Args:
        resource: Human-readable entity name (e.g. "Project", "Task").
        resource_id: The PK that was looked up. Included in logs, not in HTTP response.
        company_id: Optional, the scope that was enforced. For debug logging only.

    Maps to HTTP 404.
    """

    def __init__(
        self,
        resource: str,
        resource_id: int | str | None = None,
        company_id: int | None = None,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.company_id = company_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        if company_id is not None:
            msg += f" (company={company_id})"
        super().__init__(msg)

    @property
    def public_message(self) -> str:
        return f"{self.resource} not found"


class ValidationError(Exception):
    """Raised when input is missing, malformed or violates a business rule.

    Covers bad field values, statuses outside the project vocabulary,
    inverted date ranges and illegal sprint transitions.

    Maps to HTTP 400.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would duplicate a unique value.

    Maps to HTTP 409.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)


class AuthenticationError(Exception):
    """Missing, invalid or expired credentials. Maps to HTTP 401."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


class AuthorizationError(Exception):
    """Caller is authenticated and in the right company but may not do this.

    Maps to HTTP 403.

    Args:
        message: Human-readable reason.
        action: Optional "resource.action" capability that was checked.
    """

    def __init__(self, message: str = "Permission denied", action: str | None = None) -> None:
        self.action = action
        super().__init__(message)
