"""Datastore — async SQLAlchemy engine, sessions and ORM models."""

from __future__ import annotations

from status_notify.datastore.client import Datastore

__all__ = ["Datastore"]
