"""V1 API request/response Pydantic schemas.

These are the *API-layer* schemas that define the HTTP contract. Endpoint
code maps between pipeline dataclasses and these models.
"""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - Pydantic needs this at runtime
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from status_notify.catalog.models import Role, StatusEntry
    from status_notify.engine.client import StatusChangeOutcome
    from status_notify.toast.sinks import Toast

# ---------------------------------------------------------------------------
# Generic
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """Standard error body ``{"code": "...", "message": "..."}``."""

    code: str
    message: str


# ---------------------------------------------------------------------------
# Status events
# ---------------------------------------------------------------------------


class StatusEventRequest(BaseModel):
    """POST /api/v1/status-events — one status transition."""

    project_id: int
    new_status: int
    acting_role: str
    old_status: int | None = None
    timestamp: datetime | None = None
    context: dict[str, str] = Field(default_factory=dict)
    wait: bool = True


class MessageSchema(BaseModel):
    subject: str
    body: str
    unresolved_placeholders: list[str] = Field(default_factory=list)


class ToastSchema(BaseModel):
    type: str
    title: str
    message: str
    duration_seconds: int

    @classmethod
    def from_toast(cls, toast: Toast) -> ToastSchema:
        return cls(**toast.to_dict())


class RecipientSchema(BaseModel):
    role: str
    address: str


class DeliverySchema(BaseModel):
    address: str
    role: str
    result: str
    error_code: str | None = None
    detail: str | None = None


class DispatchSchema(BaseModel):
    outcome: str
    deliveries: list[DeliverySchema] = Field(default_factory=list)


class StatusEventResponse(BaseModel):
    """Result of running one status transition through the pipeline."""

    project_id: int
    status_code: int
    catalog_hit: bool
    local_message: MessageSchema
    toasts: list[ToastSchema]
    countdown_seconds: int = 0
    redirect_url: str | None = None
    recipients: list[RecipientSchema] = Field(default_factory=list)
    dropped_recipients: list[str] = Field(default_factory=list)
    dispatch: DispatchSchema | None = None
    dispatch_pending: bool = False
    catalog_error: str | None = None

    @classmethod
    def from_outcome(
        cls,
        outcome: StatusChangeOutcome,
        toasts: list[Toast],
        *,
        pending: bool = False,
    ) -> StatusEventResponse:
        decision = outcome.decision
        local = decision.local_message
        dispatch = None
        if outcome.report is not None:
            dispatch = DispatchSchema.model_validate(outcome.report.to_dict())
        return cls(
            project_id=outcome.event.project_id,
            status_code=decision.status_code,
            catalog_hit=decision.catalog_hit,
            local_message=MessageSchema(
                subject=local.subject,
                body=local.body,
                unresolved_placeholders=list(local.unresolved_placeholders),
            ),
            toasts=[ToastSchema.from_toast(t) for t in toasts],
            countdown_seconds=decision.countdown_seconds,
            redirect_url=decision.redirect_url,
            recipients=[
                RecipientSchema(role=r.role.value, address=r.address)
                for r in decision.external_recipients
            ],
            dropped_recipients=[r.value for r in decision.dropped_recipients],
            dispatch=dispatch,
            dispatch_pending=pending,
            catalog_error=outcome.catalog_error,
        )


# ---------------------------------------------------------------------------
# Statuses
# ---------------------------------------------------------------------------


class StatusSummary(BaseModel):
    """Role view of one catalog entry."""

    status_code: int
    name: str
    tab: str | None = None
    action: str = ""

    @classmethod
    def from_entry(cls, entry: StatusEntry, role: Role) -> StatusSummary:
        return cls(
            status_code=entry.status_code,
            name=entry.name_for(role),
            tab=entry.tab_for(role),
            action=entry.admin_action if role.is_admin_side else "",
        )


class StatusListResponse(BaseModel):
    role: str
    statuses: list[StatusSummary]


class StatusTabsResponse(BaseModel):
    role: str
    tabs: dict[str, list[StatusSummary]]


class StatusDetail(BaseModel):
    """Full catalog entry."""

    status_code: int
    admin_name: str
    client_name: str
    admin_tab: str | None = None
    client_tab: str | None = None
    admin_action: str = ""
    admin_email_subject: str | None = None
    admin_email_content: str | None = None
    client_email_subject: str | None = None
    client_email_content: str | None = None
    toast_admin: str | None = None
    toast_client: str | None = None
    notify_roles: list[str] = Field(default_factory=list)
    est_time: str | None = None
    countdown_seconds: int = 0
    admin_button_text: str | None = None
    admin_button_link: str | None = None
    client_button_text: str | None = None
    client_button_link: str | None = None
    admin_redirect_url: str | None = None
    client_redirect_url: str | None = None
