"""V1 status catalog endpoints — role views of the catalog."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from status_notify.api.dependencies import get_catalog, get_role
from status_notify.api.v1.schemas import (
    StatusDetail,
    StatusListResponse,
    StatusSummary,
    StatusTabsResponse,
)
from status_notify.catalog.catalog import StatusCatalog  # noqa: TC001
from status_notify.catalog.models import CatalogMiss, Role
from status_notify.errors.definitions import ErrStatusNotFound

router = APIRouter(prefix="/statuses", tags=["statuses"])


@router.get("", response_model=StatusListResponse)
async def list_statuses(
    catalog: Annotated[StatusCatalog, Depends(get_catalog)],
    role: Annotated[Role, Depends(get_role)],
) -> StatusListResponse:
    """Statuses visible to *role*, ordered by code."""
    return StatusListResponse(
        role=role.value,
        statuses=[StatusSummary.from_entry(e, role) for e in catalog.by_role(role)],
    )


@router.get("/tabs", response_model=StatusTabsResponse)
async def list_status_tabs(
    catalog: Annotated[StatusCatalog, Depends(get_catalog)],
    role: Annotated[Role, Depends(get_role)],
) -> StatusTabsResponse:
    """Statuses grouped by the tab *role* sees them under."""
    tabs = {
        tab: [StatusSummary.from_entry(e, role) for e in entries]
        for tab, entries in catalog.tabs_for(role).items()
    }
    return StatusTabsResponse(role=role.value, tabs=tabs)


@router.get("/{status_code}", response_model=StatusDetail)
async def get_status(
    status_code: int,
    catalog: Annotated[StatusCatalog, Depends(get_catalog)],
) -> StatusDetail:
    entry = catalog.lookup(status_code)
    if isinstance(entry, CatalogMiss):
        raise ErrStatusNotFound
    return StatusDetail.model_validate(entry.to_dict())
