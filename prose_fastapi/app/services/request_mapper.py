"""Decode analysis request bodies into validated text."""

import logging

from fastapi import Request
from pydantic import ValidationError

from prose_fastapi.app.exceptions import ParseError
from prose_fastapi.app.models import AnalysisRequest

logger = logging.getLogger(__name__)


def _describe(error: ValidationError) -> str:
    first = error.errors()[0]
    if first["type"] == "json_invalid":
        return "Request body is not valid JSON"
    if first["type"] in ("model_type", "model_attributes_type", "dict_type"):
        return "Request body must be a JSON object"

    location = ".".join(str(part) for part in first["loc"]) or "body"
    return f"Invalid '{location}': {first['msg']}"


def parse_analysis_request(body: bytes, max_length: int) -> AnalysisRequest:
    """Parse a raw request body into an AnalysisRequest.

    Args:
        body: The raw HTTP request body.
        max_length: Largest accepted ``text`` length in characters.

    Returns:
        AnalysisRequest: The validated request.

    Raises:
        ParseError: If the body is not a JSON object, or ``text`` is missing,
            not a string, blank, or longer than ``max_length``.
    """
    try:
        parsed = AnalysisRequest.model_validate_json(body)
    except ValidationError as e:
        raise ParseError(_describe(e)) from e

    if not parsed.text.strip():
        raise ParseError("Invalid 'text': must not be blank")
    if len(parsed.text) > max_length:
        raise ParseError(f"Invalid 'text': longer than {max_length} characters")

    return parsed


def max_body_size(max_length: int) -> int:
    """Largest body that can still carry ``max_length`` characters of text.

    A JSON escape such as ``\\u00e9`` spends six bytes on one character; the
    extra kilobyte leaves room for the surrounding object and whitespace.
    """
    return max_length * 6 + 1024


async def read_body(request: Request, limit: int) -> bytes:
    """Read the request body, refusing to buffer more than ``limit`` bytes.

    Raises:
        ParseError: If Content-Length or the streamed body exceeds ``limit``.
    """
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > limit:
        logger.warning("Rejected request body of %s bytes (limit %d)", declared, limit)
        raise ParseError("Request body too large")

    chunks = bytearray()
    async for chunk in request.stream():
        chunks.extend(chunk)
        if len(chunks) > limit:
            logger.warning("Rejected streamed request body over %d bytes", limit)
            raise ParseError("Request body too large")
    return bytes(chunks)


async def analysis_text(request: Request) -> str:
    """FastAPI dependency yielding the validated ``text`` of the request body."""
    settings = request.app.state.settings
    body = await read_body(request, max_body_size(settings.MAX_TEXT_LENGTH))
    parsed = parse_analysis_request(body, settings.MAX_TEXT_LENGTH)
    logger.debug("Parsed analysis request with %d characters", len(parsed.text))
    return parsed.text
