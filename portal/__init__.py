"""Core utilities for the mentor portal."""

from __future__ import annotations

from typing import Any

from .api import ApiResponse, PortalAPI
from .store import MemoryStore, RecordStore, SQLiteStore, resolve_database_path


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the portal HTTP application."""

    from .service import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "ApiResponse",
    "MemoryStore",
    "PortalAPI",
    "RecordStore",
    "SQLiteStore",
    "create_app",
    "resolve_database_path",
]
