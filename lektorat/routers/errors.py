"""
Translation of domain exceptions into HTTP errors.

Routers catch ``LektoratError`` and re-raise ``http_error(exc)`` so that
every endpoint reports the same status codes for the same failures.
"""
from __future__ import annotations

import logging

from fastapi import HTTPException, status

from lektorat.exceptions import (
    ChunkJobError,
    ConfigurationError,
    DocumentError,
    JobCancelledError,
    LektoratError,
    ProviderError,
)

logger = logging.getLogger(__name__)


def status_code_for(exc: LektoratError) -> int:
    if isinstance(exc, ChunkJobError):
        # A missing key surfacing mid-job is still the caller's problem
        if isinstance(exc.cause, ConfigurationError):
            return status.HTTP_400_BAD_REQUEST
        return status.HTTP_502_BAD_GATEWAY
    if isinstance(exc, ConfigurationError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, ProviderError):
        return status.HTTP_502_BAD_GATEWAY
    if isinstance(exc, DocumentError):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(exc, JobCancelledError):
        return status.HTTP_409_CONFLICT
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def http_error(exc: LektoratError) -> HTTPException:
    code = status_code_for(exc)
    if isinstance(exc, DocumentError):
        detail = {"message": str(exc), "code": exc.code, "details": exc.details}
    else:
        detail = str(exc)
    logger.warning("%s -> HTTP %d: %s", type(exc).__name__, code, exc)
    return HTTPException(status_code=code, detail=detail)
