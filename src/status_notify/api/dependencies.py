"""FastAPI dependency injection helpers.

Usage in a route::

    @router.get("/statuses")
    async def list_statuses(
        engine: Annotated[NotificationEngine, Depends(get_engine)],
        role: Annotated[Role, Depends(get_role)],
    ) -> ...:
        ...
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Query, Request

from status_notify.catalog.catalog import StatusCatalog  # noqa: TC001
from status_notify.catalog.models import Role
from status_notify.engine.client import NotificationEngine  # noqa: TC001
from status_notify.errors.definitions import ErrEngineNotReady, ErrInvalidRole

# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def get_engine(request: Request) -> NotificationEngine:
    """Retrieve the engine from ``app.state``.

    Raises:
        NotifyError: 503 if the engine is missing or not initialized.
    """
    engine: NotificationEngine | None = getattr(request.app.state, "engine", None)
    if engine is None or not engine.is_initialized:
        raise ErrEngineNotReady
    return engine


async def get_catalog(
    engine: Annotated[NotificationEngine, Depends(get_engine)],
) -> StatusCatalog:
    """Load a fresh catalog for this request."""
    return await engine.load_catalog()


# ---------------------------------------------------------------------------
# Query parameters
# ---------------------------------------------------------------------------


def get_role(role: Annotated[str, Query()] = "Client") -> Role:
    """Parse the ``role`` query parameter.

    Raises:
        NotifyError: 400 for unknown roles.
    """
    try:
        return Role.parse(role)
    except ValueError:
        raise ErrInvalidRole from None
