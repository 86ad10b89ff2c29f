"""Pre-built error instances raised by the HTTP layer."""

from __future__ import annotations

from status_notify.errors.notify_errors import NotifyError

# -- Engine ----------------------------------------------------------------

ErrEngineNotReady = NotifyError(
    "notification engine not initialized", status_code=503, code="engine-not-ready"
)

# -- Validation ------------------------------------------------------------

ErrInvalidRole = NotifyError(
    "role must be one of Admin, Staff, Client", status_code=400, code="invalid-role"
)

# -- Not Found -------------------------------------------------------------

ErrStatusNotFound = NotifyError("status not found", status_code=404, code="status-not-found")
