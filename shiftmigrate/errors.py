"""Exception taxonomy for the migration pipeline."""

from typing import Optional


class ShiftMigrateError(Exception):
    """Base class for all migration errors."""


class AuthError(ShiftMigrateError):
    """Login against the legacy panel failed. Fatal for a run."""

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body[:500] if body else ""

    def __str__(self) -> str:
        message = super().__str__()
        if self.status is not None:
            return f"{message} (HTTP {self.status})"
        return message


class LegacyRequestError(ShiftMigrateError):
    """An authenticated request to the legacy API returned a non-2xx status."""

    def __init__(self, url: str, status: int, body: str = ""):
        self.url = url
        self.status = status
        self.body = body[:100] if body else ""
        super().__init__(f"Legacy API request failed: {status} for {url} - {self.body}")


class PageFetchError(ShiftMigrateError):
    """A page of a paginated resource could not be fetched."""

    def __init__(self, resource: str, page: int, cause: str):
        self.resource = resource
        self.page = page
        self.cause = cause
        super().__init__(f"Failed to fetch {resource} page {page}: {cause}")

    def to_dict(self) -> dict:
        return {"resource": self.resource, "page": self.page, "error": self.cause}


class PhotoError(ShiftMigrateError):
    """Profile photo download or normalization failed. Soft."""

    def __init__(self, owner: str, cause: str):
        self.owner = owner
        self.cause = cause
        super().__init__(f"Photo for {owner} failed: {cause}")


class TransformError(ShiftMigrateError):
    """A legacy record could not be mapped to a draft."""


class ImportRecordError(ShiftMigrateError):
    """A draft could not be written to the target store."""


class DuplicateEntityError(ShiftMigrateError):
    """The target store rejected a create because the dedup key already exists."""
