"""Error taxonomy for the prose service and its JSON rendering."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import ResponseValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ProseServiceError(Exception):
    """Base class for errors surfaced to API callers.

    Attributes:
        status_code: HTTP status returned to the caller.
        error: Machine-readable error class included in the response body.
        detail: Human-readable description included in the response body.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "internal_error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class AuthError(ProseServiceError):
    """The API key header is missing or does not match the configured secret."""

    status_code = status.HTTP_401_UNAUTHORIZED
    error = "auth_error"


class ParseError(ProseServiceError):
    """The request body is not a JSON object with a usable ``text`` string."""

    status_code = status.HTTP_400_BAD_REQUEST
    error = "parse_error"


class AnalysisError(ProseServiceError):
    """The document analyzer failed or timed out on well-formed input."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "analysis_error"


class AnalyzerUnavailableError(AnalysisError):
    """No analyzer is loaded, or the requested capability is disabled."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error = "analyzer_unavailable"


class EncodingError(ProseServiceError):
    """Analyzer output could not be shaped into a response."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "encoding_error"


def error_response(exc: ProseServiceError) -> JSONResponse:
    """Render an error as the JSON body shared by every failing endpoint."""
    headers = None
    if isinstance(exc, AuthError):
        headers = {"WWW-Authenticate": "ApiKey"}
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.error, "detail": exc.detail},
        headers=headers,
    )


async def service_error_handler(request: Request, exc: ProseServiceError) -> JSONResponse:
    """FastAPI exception handler for ProseServiceError and its subclasses."""
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed with %s: %s",
            request.method,
            request.url.path,
            exc.error,
            exc.detail,
        )
    else:
        logger.warning(
            "%s %s rejected with %s: %s",
            request.method,
            request.url.path,
            exc.error,
            exc.detail,
        )
    return error_response(exc)


async def response_validation_handler(request: Request, exc: Exception) -> JSONResponse:
    """Map FastAPI response validation failures to an EncodingError."""
    logger.error("Failed to encode response for %s: %s", request.url.path, exc)
    return error_response(EncodingError("Failed to encode response"))


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the error handlers to a FastAPI application."""
    app.add_exception_handler(ProseServiceError, service_error_handler)
    app.add_exception_handler(ResponseValidationError, response_validation_handler)
