# logplatform/core/errors.py
"""
Exception taxonomy for the storage engine and API.

Every error carries the HTTP status it maps to, so the FastAPI exception
handlers in `logplatform.main` can render `{"error": ...}` bodies without a
per-route try/except.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class LogPlatformError(Exception):
    """Base class for all errors raised by this package."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_body(self) -> Dict[str, Any]:
        return {"error": self.message}


class EntryValidationError(LogPlatformError):
    """A single log entry failed validation. Never retried, no side effects."""

    status_code = 400


class BatchValidationError(LogPlatformError):
    """
    One or more entries of a batch failed validation.

    The whole batch is rejected, so the body always reports `created: 0`.
    """

    status_code = 400

    def __init__(self, errors: List[Dict[str, Any]]) -> None:
        super().__init__("Validation errors in batch")
        self.errors = errors

    def to_body(self) -> Dict[str, Any]:
        return {"error": self.message, "errors": self.errors, "created": 0}


class StorageError(LogPlatformError):
    """Hot store I/O failure."""

    status_code = 503


class DuplicateIdError(StorageError):
    status_code = 409

    def __init__(self, entry_id: str) -> None:
        super().__init__(f"Log entry {entry_id} already exists")
        self.entry_id = entry_id


class DuplicateServiceNameError(LogPlatformError):
    status_code = 409

    def __init__(self, name: str) -> None:
        super().__init__("Service name already exists")
        self.name = name


class ArchiveWriteError(LogPlatformError):
    """Appending to an archive partition failed; the archive run stops."""

    status_code = 500

    def __init__(self, path: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"Failed to append archive partition {path}")
        self.path = path
        self.__cause__ = cause


class ArchiveReadError(LogPlatformError):
    """
    A partition file or line could not be read.

    Only raised inside the archive reader, which logs and absorbs it.
    """


class QueryTimeoutError(LogPlatformError):
    status_code = 504

    def __init__(self, timeout: float) -> None:
        super().__init__(f"Query did not complete within {timeout:g}s")
        self.timeout = timeout


class AuthError(LogPlatformError):
    status_code = 401


class AdminAccessError(LogPlatformError):
    status_code = 403
