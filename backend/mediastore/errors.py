"""Error taxonomy for the file service.

Callers translate these into transport responses:
    ValidationError  -> caller-fixable, raised before any side effect
    NotFoundError    -> unknown id/uuid, or bytes missing on disk
    FilesystemError  -> directory/file I/O failure (PathError: confinement violation)
    DecodeError      -> corrupt or unsupported image payload
    PersistenceError -> metadata store failure
"""
from typing import Optional


class FileServiceError(Exception):
    """Base error - carries operation, identifier and underlying cause for diagnosis."""

    def __init__(
        self,
        message: str,
        *,
        operation: Optional[str] = None,
        identifier: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        self.message = message
        self.operation = operation
        self.identifier = identifier
        self.cause = cause
        super().__init__(str(self))
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        parts = []
        if self.operation:
            parts.append(self.operation)
        if self.identifier:
            parts.append(self.identifier)
        prefix = f"[{' '.join(parts)}] " if parts else ""
        suffix = f": {self.cause}" if self.cause is not None else ""
        return f"{prefix}{self.message}{suffix}"

    def to_dict(self) -> dict:
        """For structured logs."""
        return {
            "error": type(self).__name__,
            "message": self.message,
            "operation": self.operation,
            "identifier": self.identifier,
            "cause": str(self.cause) if self.cause is not None else None,
        }


class ValidationError(FileServiceError):
    """Oversized payload or disallowed content type."""
    pass


class NotFoundError(FileServiceError):
    pass


class FilesystemError(FileServiceError):
    pass


class PathError(FilesystemError):
    """Computed path escapes the storage root."""
    pass


class DecodeError(FileServiceError):
    pass


class PersistenceError(FileServiceError):
    pass
