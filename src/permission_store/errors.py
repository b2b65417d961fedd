from __future__ import annotations


class AppError(Exception):
    """Base error for expected failures."""

    def __init__(self, message: str, *, http_status: int = 400):
        super().__init__(message)
        self.message = message
        self.http_status = http_status


class NotFoundError(AppError):
    def __init__(self, message: str = "not found"):
        super().__init__(message, http_status=404)


class StorageUnavailableError(AppError):
    """The permission store could not be reached. Not retried here."""

    def __init__(self, message: str = "permission store unavailable"):
        super().__init__(message, http_status=503)


class RecordCorruptError(AppError):
    """A stored permission record could not be decoded."""

    def __init__(self, message: str, *, key: str | None = None, field: str | None = None):
        super().__init__(message, http_status=500)
        self.key = key
        self.field = field
