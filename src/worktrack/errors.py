"""Error taxonomy for Worktrack.

Every failure the core can report to a caller is one of these exceptions.
They are raised by the access evaluator enforcement, the services and the
authentication layer, and are translated to HTTP responses by the handlers
registered in :func:`worktrack.web.app.create_app`.

NotFoundError is deliberately raised both for absent resources and for
resources the caller has no relationship with, so the two cases are
indistinguishable from the outside.
"""

from __future__ import annotations


class WorktrackError(Exception):
    """Base class for all errors surfaced to API callers.

    Attributes:
        message: Human-readable, caller-safe description.
        status_code: HTTP status code used by the web layer.
    """

    status_code: int = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class AuthenticationError(WorktrackError):
    """No principal, an invalid principal, or an expired token."""

    status_code = 401


class ForbiddenError(WorktrackError):
    """The principal is known and related to the resource but not allowed.

    Attributes:
        reason: Stable deny reason, e.g. "not assignee".
    """

    status_code = 403

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class NotFoundError(WorktrackError):
    """The resource is absent, or hidden from an unrelated principal.

    Attributes:
        resource: Resource kind used in the message ("Task", "Project").
    """

    status_code = 404

    def __init__(self, resource: str) -> None:
        self.resource = resource
        super().__init__(f"{resource} not found")


class InvalidPayloadError(WorktrackError):
    """The request payload is malformed.

    Attributes:
        field: Name of the offending field.
    """

    status_code = 422

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(message)


class ConflictError(WorktrackError):
    """A concurrent modification won the race; the caller may retry."""

    status_code = 409
