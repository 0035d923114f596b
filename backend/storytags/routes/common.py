"""
Shared route helpers.
Rate limiter and translation of service errors into HTTP responses.
"""

import logging

from fastapi import HTTPException, status
from slowapi import Limiter
from slowapi.util import get_remote_address

from storytags.exceptions import (
    InvalidArgument,
    NotFound,
    StorageUnavailable,
    TagDiscoveryError,
)

logger = logging.getLogger(__name__)

# Rate limiter (uses client IP)
limiter = Limiter(key_func=get_remote_address)


def http_error(exc: TagDiscoveryError) -> HTTPException:
    """
    Map a service error to an HTTPException.
    - InvalidArgument -> 400
    - NotFound (incl. TagsNotFound) -> 404
    - StorageUnavailable -> 503
    """
    if isinstance(exc, InvalidArgument):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)

    if isinstance(exc, NotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))

    if isinstance(exc, StorageUnavailable):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database temporarily unavailable",
        )

    logger.error(f"Unhandled tag service error: {exc}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal error",
    )
