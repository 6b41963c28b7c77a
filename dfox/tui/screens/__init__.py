"""Screen modules for the TUI."""
from __future__ import annotations

# Import all screen modules to register them with the router
from . import (
    connection,
    databases,
    engine_select,
    overlays,
    query,
    tables,
)

__all__ = [
    "connection",
    "databases",
    "engine_select",
    "overlays",
    "query",
    "tables",
]
