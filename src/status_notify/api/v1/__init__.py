"""V1 REST API routes.

Combines all sub-routers under the ``/api/v1`` prefix.
"""

from fastapi import APIRouter

from status_notify.api.v1.status_events import router as status_events_router
from status_notify.api.v1.statuses import router as statuses_router

v1_router = APIRouter(prefix="/api/v1")

v1_router.include_router(status_events_router)
v1_router.include_router(statuses_router)

__all__ = ["v1_router"]
