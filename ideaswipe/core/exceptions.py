"""
Service-layer exceptions.

Raised for caller mistakes: an id that does not resolve, input that breaks a
rule, or an actor who is not allowed to act. Engine outcomes that are
expected when two writers race (already promoted, already pending, no
candidate) are NOT raised. Those come back as result objects.

``create_app`` maps each type to one JSON error shape:

    NotFoundError       404
    ValidationError     400
    ConflictError       409
    AuthorizationError  403

Usage:
    from ideaswipe.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Idea", resource_id=idea_id)
    raise ValidationError("content is required", details={"content": "empty"})
"""


class NotFoundError(Exception):
    """No row for ``resource`` / ``resource_id``.

    The id goes into the message for logs; the HTTP body only names the resource.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        where = "" if resource_id is None else f" id={resource_id}"
        super().__init__(f"{resource}{where} not found")


class ValidationError(Exception):
    """Input the service refuses. ``details`` is echoed to the client as-is."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.details = dict(details or {})


class ConflictError(Exception):
    """The row is no longer in a state that allows the operation."""

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource, self.field, self.value = resource, field, value
        super().__init__(f"{resource}.{field} is {value!r}; operation not allowed")


class AuthorizationError(Exception):
    """The acting user exists but may not do this to the resource."""

    def __init__(self, user_id: str | None, action: str, resource: str) -> None:
        self.user_id = user_id
        self.action = action
        self.resource = resource
        super().__init__(f"User {user_id!r} may not {action} {resource}")
