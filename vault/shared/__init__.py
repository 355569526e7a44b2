"""
Shared utilities for Vault.

Provides access to common functionality used across Gate implementations.
"""

from vault.shared.gate import (
    GateLogger,
    GateErrorHandler,
    ConfigLoader,
    PathUtils,
    build_health_status,
)
from vault.shared.errors import (
    StorageError,
    AccessDenied,
    NotFound,
    Conflict,
    UnsupportedType,
    InternalError,
)

__all__ = [
    # Gate utilities
    "GateLogger",
    "GateErrorHandler",
    "ConfigLoader",
    "PathUtils",
    "build_health_status",
    # Errors
    "StorageError",
    "AccessDenied",
    "NotFound",
    "Conflict",
    "UnsupportedType",
    "InternalError",
]
