"""
Errors raised by the tag discovery services.
Routes translate them into HTTP responses.
"""
from typing import List, Optional


class TagDiscoveryError(Exception):
    """Base error for the tag services."""
    pass


class InvalidArgument(TagDiscoveryError):
    """Malformed request: bad sort mode, missing tags, limit out of bounds, invalid tag list."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.errors = list(errors or [])


class NotFound(TagDiscoveryError):
    """A requested record does not exist."""
    pass


class TagsNotFound(NotFound):
    """One or more requested tag slugs do not resolve to a tag."""

    def __init__(self, missing_slugs: List[str]):
        self.missing_slugs = list(missing_slugs)
        super().__init__(f"Tags not found: {', '.join(self.missing_slugs)}")


class StorageUnavailable(TagDiscoveryError):
    """The database could not be reached or is locked."""
    pass
