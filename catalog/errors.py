# catalog/errors.py
from typing import Any, List, Optional


class CatalogError(Exception):
    """Base class for every error raised by the catalog core"""


class ValidationError(CatalogError):
    """Caller input failed validation before any side effect"""

    def __init__(self, message: str, details: Optional[List[Any]] = None):
        super().__init__(message)
        self.details = details or []


class SourceUnavailable(CatalogError):
    """OpenLibrary timed out, was unreachable, failed or answered with garbage"""


class NotFoundInSource(CatalogError):
    """OpenLibrary does not know the requested id"""


class ProfileNotFound(CatalogError):
    """The user has no profile row"""


class QuotaExceeded(CatalogError):
    """Admitting the attach would push the user past their quota"""

    def __init__(self, message: str, count: int, max: int):
        super().__init__(message)
        self.count = count
        self.max = max


class AlreadyAttached(CatalogError):
    pass


class NotAttached(CatalogError):
    pass


class EntityNotFound(CatalogError):
    """A local catalog row is missing or not visible to the user"""


class RateLimited(CatalogError):
    """Too many attach requests within the rate-limit window"""

    def __init__(self, message: str, retry_after: float):
        super().__init__(message)
        self.retry_after = retry_after
