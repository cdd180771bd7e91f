"""Exception handlers translating service errors into API error responses."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from devinsights.middleware.error_codes import (
    PASSTHROUGH_UPSTREAM_STATUSES,
    ErrorCode,
    get_error_code,
)
from devinsights.services.exceptions import (
    AnalyticsApiError,
    AnalyticsTransportError,
    AuthenticationError,
    DevInsightsError,
    InvalidRepositoryNameError,
    InvalidSelectionError,
    JobNotFoundError,
    LoginInProgressError,
    ReadinessTimeoutError,
    RepositoryNotFoundError,
)

logger = logging.getLogger(__name__)


def _error_response(status_code: int, code: ErrorCode, detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": code.value, "detail": detail},
    )


def _status_for(exc: DevInsightsError) -> tuple[int, ErrorCode]:
    if isinstance(exc, LoginInProgressError):
        return status.HTTP_409_CONFLICT, ErrorCode.LOGIN_IN_PROGRESS
    if isinstance(exc, AuthenticationError):
        return status.HTTP_401_UNAUTHORIZED, ErrorCode.UNAUTHORIZED
    if isinstance(exc, (InvalidRepositoryNameError, InvalidSelectionError)):
        return status.HTTP_400_BAD_REQUEST, ErrorCode.BAD_REQUEST
    if isinstance(exc, RepositoryNotFoundError):
        return status.HTTP_404_NOT_FOUND, ErrorCode.REPOSITORY_NOT_FOUND
    if isinstance(exc, JobNotFoundError):
        return status.HTTP_404_NOT_FOUND, ErrorCode.JOB_NOT_FOUND
    if isinstance(exc, ReadinessTimeoutError):
        return status.HTTP_504_GATEWAY_TIMEOUT, ErrorCode.READINESS_TIMEOUT
    if isinstance(exc, AnalyticsTransportError):
        return status.HTTP_503_SERVICE_UNAVAILABLE, ErrorCode.UPSTREAM_UNAVAILABLE
    if isinstance(exc, AnalyticsApiError):
        if exc.status_code in PASSTHROUGH_UPSTREAM_STATUSES:
            return exc.status_code, get_error_code(exc.status_code)
        return status.HTTP_502_BAD_GATEWAY, ErrorCode.UPSTREAM_ERROR
    return status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorCode.INTERNAL_ERROR


async def devinsights_error_handler(request: Request, exc: DevInsightsError) -> JSONResponse:
    status_code, code = _status_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({code.value}): {exc}")
    return _error_response(status_code, code, str(exc))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DevInsightsError, devinsights_error_handler)
