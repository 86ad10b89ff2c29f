"""ORM model for the ``project_statuses`` configuration table."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - SQLAlchemy needs this at runtime for Mapped[datetime]
from typing import Any

from sqlalchemy import JSON, DateTime, Integer, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all models."""

    type_annotation_map = {  # noqa: RUF012
        dict[str, Any]: JSON,
        list[str]: JSON,
    }


class ProjectStatusRow(Base):
    """One configured workflow status.

    Column names follow the table the administrative configuration screen
    writes to.
    """

    __tablename__ = "project_statuses"

    status_code: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    admin_status_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    client_status_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    admin_status_tab: Mapped[str | None] = mapped_column(String(128), nullable=True)
    client_status_tab: Mapped[str | None] = mapped_column(String(128), nullable=True)
    project_action: Mapped[str] = mapped_column(Text, nullable=False, default="")
    admin_email_subject: Mapped[str | None] = mapped_column(Text, nullable=True)
    admin_email_content: Mapped[str | None] = mapped_column(Text, nullable=True)
    client_email_subject: Mapped[str | None] = mapped_column(Text, nullable=True)
    client_email_content: Mapped[str | None] = mapped_column(Text, nullable=True)
    toast_admin: Mapped[str | None] = mapped_column(Text, nullable=True)
    toast_client: Mapped[str | None] = mapped_column(Text, nullable=True)
    notify: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    est_time: Mapped[str | None] = mapped_column(String(128), nullable=True)
    countdown_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    admin_button_text: Mapped[str | None] = mapped_column(String(255), nullable=True)
    admin_button_link: Mapped[str | None] = mapped_column(Text, nullable=True)
    client_button_text: Mapped[str | None] = mapped_column(String(255), nullable=True)
    client_button_link: Mapped[str | None] = mapped_column(Text, nullable=True)
    modal_auto_redirect_admin: Mapped[str | None] = mapped_column(Text, nullable=True)
    modal_auto_redirect_client: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<ProjectStatusRow code={self.status_code} name={self.admin_status_name[:30]}>"
