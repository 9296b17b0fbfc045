"""
Error taxonomy for filegate.

Every per-request error carries the HTTP status it maps to and a generic
`detail` that is safe to show to clients (no filesystem paths).
"""


class FileGateError(Exception):
    status_code: int = 500
    detail: str = "Internal error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.detail)


class ConfigError(FileGateError):
    """Startup-only failure: config or credential file unreadable/malformed."""


class Unauthorized(FileGateError):
    status_code = 401
    detail = "Unauthorized"


class MalformedToken(Unauthorized):
    """Session token does not decode into exactly two fields."""


class BadRequest(FileGateError):
    status_code = 400
    detail = "Bad request"


class InvalidFilename(BadRequest):
    detail = "Invalid filename"


class NotFound(FileGateError):
    status_code = 404
    detail = "File not found"


class StorageWriteError(FileGateError):
    detail = "Failed to save file"


class StorageReadError(FileGateError):
    detail = "Failed to read file"


class StorageDeleteError(StorageWriteError):
    detail = "Failed to delete file"
