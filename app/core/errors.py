from typing import Optional


class UploadError(Exception):
    """Base for failures the upload pipeline reports to the caller."""

    status_code = 500


class InvalidInput(UploadError):
    status_code = 400


class ConfigurationError(UploadError):
    status_code = 500


class RemoteError(UploadError):
    """Non-success response (or transport failure) from the GitHub API.

    `status` is the upstream HTTP status, or None when no response arrived.
    """

    def __init__(self, message: str, status: Optional[int] = None):
        self.message = message
        self.status = status
        super().__init__(f"GitHub API error: {message}")


class NotFound(RemoteError):
    pass


class VersionConflict(RemoteError):
    """The write's sha was stale, or missing for a file that already exists."""
