"""Routes module for the prose FastAPI API."""

import logging

from fastapi import APIRouter, Depends, Request, status

from prose_fastapi.app.exceptions import AnalyzerUnavailableError
from prose_fastapi.app.models import (
    AnalysisRequest,
    Entity,
    ErrorResponse,
    HealthStatus,
    Sentence,
    Token,
)
from prose_fastapi.app.services.adapter import AnalysisAdapter
from prose_fastapi.app.services.request_mapper import analysis_text
from prose_fastapi.app.telemetry import trace_method

logger = logging.getLogger(__name__)
router = APIRouter()

# The body is read by the analysis_text dependency, so document it explicitly.
ANALYSIS_BODY = {
    "requestBody": {
        "required": True,
        "content": {"application/json": {"schema": AnalysisRequest.model_json_schema()}},
    }
}
ERROR_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse, "description": "Malformed body"},
    status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse, "description": "Missing or invalid API key"},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse, "description": "Analysis failed"},
    status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ErrorResponse, "description": "Analyzer unavailable"},
}


def get_adapter(req: Request) -> AnalysisAdapter:
    adapter = getattr(req.app.state, "adapter", None)
    if adapter is None:
        logger.error("Analyzer service not available")
        raise AnalyzerUnavailableError("Analyzer service not available")
    return adapter


@router.get(
    "/health",
    response_model=HealthStatus,
    summary="Health check endpoint",
    response_description="Service health status",
    status_code=status.HTTP_200_OK,
    tags=["Monitoring"],
)
async def health_check() -> HealthStatus:
    """Health check endpoint. Requires no API key and never touches the analyzer."""
    return HealthStatus()


@router.post(
    "/tokens",
    response_model=list[Token],
    summary="Tokenize and tag text",
    response_description="Tokens in document order",
    status_code=status.HTTP_200_OK,
    responses=ERROR_RESPONSES,
    openapi_extra=ANALYSIS_BODY,
    tags=["Analyzer"],
)
@trace_method("tokens")
async def tokens(
    text: str = Depends(analysis_text),
    adapter: AnalysisAdapter = Depends(get_adapter),
) -> list[Token]:
    """Split text into tokens with part-of-speech tags and IOB labels.

    Args:
        text: The validated ``text`` field of the request body.
        adapter: The analysis adapter stored on the application state.

    Returns:
        list[Token]: One entry per token, in the order they occur in the text.
    """
    return await adapter.tokens(text)


@router.post(
    "/entities",
    response_model=list[Entity],
    summary="Extract named entities",
    response_description="Named entities in analyzer order",
    status_code=status.HTTP_200_OK,
    responses=ERROR_RESPONSES,
    openapi_extra=ANALYSIS_BODY,
    tags=["Analyzer"],
)
@trace_method("entities")
async def entities(
    text: str = Depends(analysis_text),
    adapter: AnalysisAdapter = Depends(get_adapter),
) -> list[Entity]:
    """Extract named entities. Text without entities yields an empty list."""
    return await adapter.entities(text)


@router.post(
    "/sentences",
    response_model=list[Sentence],
    summary="Segment text into sentences",
    response_description="Sentences in document order",
    status_code=status.HTTP_200_OK,
    responses=ERROR_RESPONSES,
    openapi_extra=ANALYSIS_BODY,
    tags=["Analyzer"],
)
@trace_method("sentences")
async def sentences(
    text: str = Depends(analysis_text),
    adapter: AnalysisAdapter = Depends(get_adapter),
) -> list[Sentence]:
    """Split text into sentences, in document order."""
    return await adapter.sentences(text)
