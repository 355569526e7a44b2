"""
Error taxonomy shared by every Vault gate.

Each error carries a stable ``code`` so outer layers (HTTP, tool results)
can map failures without string matching.
"""


class StorageError(Exception):
    """Base class for storage-layer failures."""

    code = "internal"

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__

    def to_dict(self) -> dict:
        return {"success": False, "error": self.code, "detail": self.message}


class AccessDenied(StorageError):
    """Path escapes the permitted root or violates segment ownership."""

    code = "access_denied"


class NotFound(StorageError):
    """Target does not exist (or is the wrong kind of entry)."""

    code = "not_found"


class Conflict(StorageError):
    """Destination of a rename/move is already occupied."""

    code = "conflict"


class UnsupportedType(StorageError):
    """No text extractor is registered for the file extension."""

    code = "unsupported_type"


class InternalError(StorageError):
    """Unclassified filesystem failure."""

    code = "internal"


__all__ = [
    "StorageError",
    "AccessDenied",
    "NotFound",
    "Conflict",
    "UnsupportedType",
    "InternalError",
]
