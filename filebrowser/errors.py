"""Error taxonomy shared by the core services and the API layer."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    NOT_FOUND = 'not_found'
    PATH_ESCAPE = 'path_escape'
    CONFLICT = 'conflict'
    VALIDATION = 'validation'
    IO_FAILURE = 'io_failure'
    CANCELLED = 'cancelled'


class FileBrowserError(Exception):
    kind: ErrorKind = ErrorKind.IO_FAILURE
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(FileBrowserError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404


class PathEscapeError(FileBrowserError):
    kind = ErrorKind.PATH_ESCAPE
    status_code = 400

    def __init__(self, message: str = 'Access outside the configured root is not permitted.'):
        super().__init__(message)


class ConflictError(FileBrowserError):
    kind = ErrorKind.CONFLICT
    status_code = 400


class ValidationError(FileBrowserError):
    kind = ErrorKind.VALIDATION
    status_code = 400


class IOFailure(FileBrowserError):
    kind = ErrorKind.IO_FAILURE
    status_code = 500

    # Shown to clients instead of the underlying OS error text.
    public_message = 'The operation could not be completed.'


class OperationCancelled(FileBrowserError):
    kind = ErrorKind.CANCELLED
    status_code = 499
