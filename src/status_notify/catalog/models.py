"""Status catalog types — roles and per-status configuration rows."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any


class Role(enum.StrEnum):
    """User role; decides message variant and notification targeting."""

    ADMIN = "Admin"
    STAFF = "Staff"
    CLIENT = "Client"

    @property
    def is_admin_side(self) -> bool:
        """Admin and Staff share the admin message variant."""
        return self is not Role.CLIENT

    @classmethod
    def parse(cls, value: str | Role) -> Role:
        """Parse a role name case-insensitively.

        ``Author`` (the project author) is an alias of ``Client``.

        Raises:
            ValueError: If *value* names no known role.
        """
        if isinstance(value, Role):
            return value
        normalized = value.strip().lower()
        if normalized == "author":
            return cls.CLIENT
        for role in cls:
            if role.value.lower() == normalized:
                return role
        msg = f"Unknown role: {value!r}"
        raise ValueError(msg)


@dataclass(frozen=True)
class StatusEntry:
    """One workflow status and its role-specific presentation."""

    status_code: int
    admin_name: str = ""
    client_name: str = ""
    admin_tab: str | None = None
    client_tab: str | None = None
    admin_action: str = ""
    admin_email_subject: str | None = None
    admin_email_content: str | None = None
    client_email_subject: str | None = None
    client_email_content: str | None = None
    toast_admin: str | None = None
    toast_client: str | None = None
    notify_roles: frozenset[Role] = field(default_factory=frozenset)
    est_time: str | None = None
    countdown_seconds: int = 0
    admin_button_text: str | None = None
    admin_button_link: str | None = None
    client_button_text: str | None = None
    client_button_link: str | None = None
    admin_redirect_url: str | None = None
    client_redirect_url: str | None = None

    def __post_init__(self) -> None:
        if not self.admin_name and not self.client_name:
            msg = f"Status {self.status_code} needs an admin or client name"
            raise ValueError(msg)
        if self.countdown_seconds < 0:
            msg = f"Status {self.status_code} has a negative countdown"
            raise ValueError(msg)
        # Accept any iterable of role names from loaders.
        roles = frozenset(Role.parse(r) for r in self.notify_roles)
        object.__setattr__(self, "notify_roles", roles)

    def name_for(self, role: Role) -> str:
        """Display name for *role*, falling back to the other variant."""
        if role.is_admin_side:
            return self.admin_name or self.client_name
        return self.client_name or self.admin_name

    def tab_for(self, role: Role) -> str | None:
        return self.admin_tab if role.is_admin_side else self.client_tab

    def toast_for(self, role: Role) -> str | None:
        return self.toast_admin if role.is_admin_side else self.toast_client

    def email_for(self, role: Role) -> tuple[str | None, str | None]:
        """Return the ``(subject, content)`` email templates for *role*."""
        if role.is_admin_side:
            return self.admin_email_subject, self.admin_email_content
        return self.client_email_subject, self.client_email_content

    def button_for(self, role: Role) -> tuple[str | None, str | None]:
        """Return the ``(text, link)`` email call-to-action for *role*."""
        if role.is_admin_side:
            return self.admin_button_text, self.admin_button_link
        return self.client_button_text, self.client_button_link

    def redirect_for(self, role: Role) -> str | None:
        return self.admin_redirect_url if role.is_admin_side else self.client_redirect_url

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dict (roles as sorted strings)."""
        return {
            "status_code": self.status_code,
            "admin_name": self.admin_name,
            "client_name": self.client_name,
            "admin_tab": self.admin_tab,
            "client_tab": self.client_tab,
            "admin_action": self.admin_action,
            "admin_email_subject": self.admin_email_subject,
            "admin_email_content": self.admin_email_content,
            "client_email_subject": self.client_email_subject,
            "client_email_content": self.client_email_content,
            "toast_admin": self.toast_admin,
            "toast_client": self.toast_client,
            "notify_roles": sorted(r.value for r in self.notify_roles),
            "est_time": self.est_time,
            "countdown_seconds": self.countdown_seconds,
            "admin_button_text": self.admin_button_text,
            "admin_button_link": self.admin_button_link,
            "client_button_text": self.client_button_text,
            "client_button_link": self.client_button_link,
            "admin_redirect_url": self.admin_redirect_url,
            "client_redirect_url": self.client_redirect_url,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StatusEntry:
        """Build an entry from a plain dict, ignoring unknown keys."""
        known = {f for f in cls.__dataclass_fields__}
        kwargs = {k: v for k, v in data.items() if k in known}
        kwargs["notify_roles"] = frozenset(data.get("notify_roles") or ())
        return cls(**kwargs)


@dataclass(frozen=True)
class CatalogMiss:
    """Typed not-found result of :meth:`StatusCatalog.lookup`."""

    status_code: int
