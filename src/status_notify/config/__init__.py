"""Configuration — pydantic-settings models with YAML overlay."""

from __future__ import annotations

from status_notify.config.settings import AppConfig

__all__ = ["AppConfig"]
