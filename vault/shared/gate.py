"""
Shared Gate utilities for Vault.

Provides consolidated patterns for all Gate implementations:
- GateLogger: Unified logging with Python's logging module
- GateErrorHandler: Decorator for best-effort operations
- build_health_status: Standardized health payload
- ConfigLoader: Unified JSON config/sidecar loading and saving
- PathUtils: Common path operations
"""

from __future__ import annotations

import json
import logging
from functools import wraps
from pathlib import Path
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Optional,
    Type,
    TypeVar,
    Union,
)


# =============================================================================
# GateLogger - Unified logging for all Gates
# =============================================================================


class GateLogger:
    """
    Unified logging for all Gates.

    Each gate gets its own logger namespaced under ``vault``.
    """

    _loggers: Dict[str, logging.Logger] = {}
    _configured = False

    @classmethod
    def _ensure_configured(cls):
        """Ensure basic logging is configured."""
        if cls._configured:
            return

        root_logger = logging.getLogger("vault")
        if not root_logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                "[%(name)s] %(levelname)s: %(message)s"
            )
            handler.setFormatter(formatter)
            root_logger.addHandler(handler)
            root_logger.setLevel(logging.INFO)

        cls._configured = True

    @classmethod
    def get(cls, gate_name: str) -> logging.Logger:
        """
        Get a logger for a specific gate.

        Args:
            gate_name: Name of the gate (e.g., "StorageGate", "ToolGate")

        Returns:
            Logger instance for the gate
        """
        cls._ensure_configured()

        logger_name = f"vault.{gate_name}"
        if logger_name not in cls._loggers:
            cls._loggers[logger_name] = logging.getLogger(logger_name)

        return cls._loggers[logger_name]

    @classmethod
    def set_level(cls, level: Union[int, str], gate_name: Optional[str] = None):
        """
        Set logging level.

        Args:
            level: Logging level (e.g., logging.DEBUG or "DEBUG")
            gate_name: Specific gate to set level for, or None for all
        """
        if isinstance(level, str):
            level = logging.getLevelName(level.upper())
            if not isinstance(level, int):
                level = logging.INFO

        if gate_name:
            cls.get(gate_name).setLevel(level)
        else:
            cls._ensure_configured()
            logging.getLogger("vault").setLevel(level)


# =============================================================================
# GateErrorHandler - Best-effort operations
# =============================================================================


class GateErrorHandler:
    """
    Error handling for best-effort Gate operations.

    Used where a failure must be logged but never propagated
    (notifications, event fan-out).
    """

    @staticmethod
    def handle(
        gate_name: str,
        operation: str,
        exception: Exception,
        default_return: Any = None,
        log_level: int = logging.ERROR,
    ) -> Any:
        """Log a failed operation and return ``default_return``."""
        logger = GateLogger.get(gate_name)
        logger.log(log_level, f"{operation} failed: {exception}")
        return default_return

    @staticmethod
    def wrap(
        gate_name: str,
        operation: str,
        default_return: Any = None,
        log_level: int = logging.ERROR,
    ):
        """
        Decorator that logs and swallows any exception raised by the wrapped call.

        Args:
            gate_name: Name of the gate
            operation: Operation name for logging
            default_return: Value to return on error
            log_level: Logging level to use
        """
        def decorator(func: Callable) -> Callable:
            @wraps(func)
            def wrapper(*args, **kwargs):
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    return GateErrorHandler.handle(
                        gate_name, operation, e, default_return, log_level
                    )
            return wrapper
        return decorator


def build_health_status(
    gate_name: str,
    initialized: bool,
    dependencies: List[str],
    checks: Dict[str, bool],
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Build a standardized health status dict.

    Args:
        gate_name: Name of the gate
        initialized: Whether the gate is initialized
        dependencies: List of dependency names
        checks: Dict of check name -> passed
        details: Additional details

    Returns:
        Standardized health status dict
    """
    all_checks_passed = all(checks.values()) if checks else True

    return {
        "gate": gate_name,
        "healthy": initialized and all_checks_passed,
        "initialized": initialized,
        "dependencies": dependencies,
        "checks": checks,
        "details": details or {},
    }


# =============================================================================
# ConfigLoader - Unified JSON loading
# =============================================================================


ConfigT = TypeVar("ConfigT")


class ConfigLoader:
    """Consistent JSON file handling for config and sidecar files."""

    @staticmethod
    def load(
        path: Union[str, Path],
        model_class: Type[ConfigT],
        create_default: bool = True,
    ) -> Optional[ConfigT]:
        """
        Load a JSON file into a model class.

        Args:
            path: Path to the JSON file
            model_class: Pydantic model (or class with from_dict())
            create_default: If True and file doesn't exist, return model_class()

        Returns:
            Instance of model_class, or None if missing/unreadable
        """
        path = Path(path)

        if not path.exists():
            if create_default:
                return model_class()
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)

            if hasattr(model_class, "from_dict"):
                return model_class.from_dict(data)
            elif hasattr(model_class, "model_validate"):
                return model_class.model_validate(data)
            else:
                return model_class(**data)

        except (OSError, ValueError, TypeError) as e:
            logger = GateLogger.get("ConfigLoader")
            logger.error(f"Failed to load {path}: {e}")
            return None

    @staticmethod
    def save(
        path: Union[str, Path],
        config: Any,
        create_dirs: bool = True,
    ) -> bool:
        """
        Save an object to a JSON file.

        Args:
            path: Destination path
            config: Object with to_dict() or model_dump(), or a plain dict
            create_dirs: Create parent directories if needed

        Returns:
            True if successful
        """
        path = Path(path)

        try:
            if create_dirs:
                path.parent.mkdir(parents=True, exist_ok=True)

            if hasattr(config, "to_dict"):
                data = config.to_dict()
            elif hasattr(config, "model_dump"):
                data = config.model_dump(mode="json")
            else:
                data = dict(config)

            with open(path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, default=str)

            return True

        except (OSError, TypeError, ValueError) as e:
            logger = GateLogger.get("ConfigLoader")
            logger.error(f"Failed to save {path}: {e}")
            return False


# =============================================================================
# PathUtils - Common path operations
# =============================================================================


class PathUtils:
    """Common path utilities for Gates."""

    @staticmethod
    def ensure_dirs(*paths: Union[str, Path]) -> None:
        """Create each given directory (and parents) if missing."""
        for path in paths:
            Path(path).mkdir(parents=True, exist_ok=True)
