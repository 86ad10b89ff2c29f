"""Catalog, routing and dispatch errors.

None of these reach the end user: the router and dispatcher catch them,
log them and fall back to a local message.
"""

from __future__ import annotations

from status_notify.errors.notify_errors import NotifyError


class CatalogLookupFailed(NotifyError):
    """No status entry exists for the requested code."""

    def __init__(self, status_code_value: int) -> None:
        super().__init__(
            f"no status configuration for status {status_code_value}",
            status_code=404,
            code="catalog-lookup-failed",
        )
        self.status_code_value = status_code_value


class CatalogLoadError(NotifyError):
    """The persistence collaborator failed to load the status catalog."""

    def __init__(self, message: str = "status catalog unavailable") -> None:
        super().__init__(message, status_code=503, code="catalog-unavailable")


class CatalogError(NotifyError):
    """The loaded status entries violate a catalog invariant."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=500, code="catalog-invalid")


class RecipientUnresolved(NotifyError):
    """A notify-role has no resolvable address in the event context."""

    def __init__(self, role: str) -> None:
        super().__init__(
            f"no resolvable address for role {role}",
            status_code=422,
            code="recipient-unresolved",
        )
        self.role = role


class RateLimited(NotifyError):
    """The project exhausted its outbound budget for the current window."""

    def __init__(self, project_id: int) -> None:
        super().__init__(
            f"outbound rate limit exceeded for project {project_id}",
            status_code=429,
            code="rate-limited",
        )
        self.project_id = project_id


class DuplicateEvent(NotifyError):
    """The event fingerprint was already dispatched inside the dedup window."""

    def __init__(self, project_id: int, fingerprint: str) -> None:
        super().__init__(
            f"duplicate event for project {project_id}",
            status_code=409,
            code="duplicate-event",
        )
        self.project_id = project_id
        self.fingerprint = fingerprint


class DispatchTimeout(NotifyError):
    """The sink did not complete within the hard timeout."""

    def __init__(self, recipient: str, timeout: float) -> None:
        super().__init__(
            f"dispatch to {recipient} timed out after {timeout:g} seconds",
            status_code=504,
            code="dispatch-timeout",
        )
        self.recipient = recipient
        self.timeout = timeout


class DispatchTransportError(NotifyError):
    """The sink reported a transport or provider failure."""

    def __init__(self, recipient: str, detail: str) -> None:
        super().__init__(
            f"dispatch to {recipient} failed: {detail}",
            status_code=502,
            code="dispatch-transport-error",
        )
        self.recipient = recipient
        self.detail = detail
