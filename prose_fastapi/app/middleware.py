"""Custom middleware for the application."""

import hmac
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import Request, Response
from pydantic import SecretStr
from starlette.middleware.base import BaseHTTPMiddleware

from prose_fastapi.app.exceptions import AuthError, error_response

logger = logging.getLogger(__name__)

HEALTH_PATH_PREFIX = "/health"


class APIKeyMiddleware(BaseHTTPMiddleware):
    """Rejects requests whose API key header does not match the shared secret.

    Paths starting with ``/health`` are exempt. An empty configured secret
    denies every other request, including ones presenting an empty header.
    The secret and the presented value are never logged.

    Attributes:
        header_name: Name of the header carrying the API key.
    """

    def __init__(
        self,
        app: Any,
        api_key: SecretStr,
        header_name: str = "X-API-Key",
    ) -> None:
        super().__init__(app)
        self.header_name = header_name
        self._api_key = api_key.get_secret_value().encode("utf-8")

    def is_exempt(self, request: Request) -> bool:
        return request.url.path.startswith(HEALTH_PATH_PREFIX)

    def is_authorized(self, presented: str | None) -> bool:
        if not self._api_key or presented is None:
            return False
        # Starlette decodes header values as latin-1; re-encoding restores the raw bytes
        try:
            raw = presented.encode("latin-1")
        except UnicodeEncodeError:
            return False
        return hmac.compare_digest(raw, self._api_key)

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        if self.is_exempt(request):
            return await call_next(request)

        presented = request.headers.get(self.header_name)
        if not self.is_authorized(presented):
            reason = "missing" if presented is None else "invalid"
            logger.warning(
                "Authentication failed for %s %s: %s API key",
                request.method,
                request.url.path,
                reason,
            )
            return error_response(AuthError(f"{reason.capitalize()} API key"))

        logger.debug("Authentication succeeded for %s %s", request.method, request.url.path)
        return await call_next(request)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds security headers to every HTTP response, including auth failures."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Cache-Control"] = "no-store"
        return response
