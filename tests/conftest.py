"""Test configuration and fixtures."""

import re
import time
from typing import Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from prose_fastapi.app.config import Settings
from prose_fastapi.app.exceptions import AnalysisError
from prose_fastapi.app.main import create_app
from prose_fastapi.app.services.analyzer import (
    AnalyzedDocument,
    DocEntity,
    DocSentence,
    DocToken,
)

API_KEY = "test-secret-key"

KNOWN_ENTITIES = {"Ian": "PERSON", "Dutch": "NORP", "Amsterdam": "GPE"}
TOKEN_PATTERN = re.compile(r"\w+|[^\w\s]")
SENTENCE_PATTERN = re.compile(r"[^.!?]+[.!?]?")


class CountingAnalyzer:
    """Deterministic stand-in for the spaCy analyzer that counts its calls.

    Words are tagged NNP when capitalized and NN otherwise, punctuation is
    tagged ".", and words listed in KNOWN_ENTITIES become single-token
    entities.
    """

    def __init__(self, error: Exception | None = None, delay: float = 0.0) -> None:
        self.calls = 0
        self.texts: list[str] = []
        self.error = error
        self.delay = delay

    def analyze(self, text: str) -> AnalyzedDocument:
        self.calls += 1
        self.texts.append(text)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if not text.strip():
            raise AnalysisError("Cannot analyze blank text")

        tokens = []
        for word in TOKEN_PATTERN.findall(text):
            if not word[0].isalnum():
                tag = "."
            elif word[0].isupper():
                tag = "NNP"
            else:
                tag = "NN"
            label = f"B-{KNOWN_ENTITIES[word]}" if word in KNOWN_ENTITIES else "O"
            tokens.append(DocToken(text=word, tag=tag, label=label))

        return AnalyzedDocument(
            tokens=tuple(tokens),
            sentences=tuple(
                DocSentence(text=match.strip())
                for match in SENTENCE_PATTERN.findall(text)
                if match.strip()
            ),
            entities=tuple(
                DocEntity(text=token.text, label=KNOWN_ENTITIES[token.text])
                for token in tokens
                if token.text in KNOWN_ENTITIES
            ),
        )


@pytest.fixture
def settings() -> Settings:
    """Settings with a known API key and telemetry disabled."""
    return Settings(
        API_KEY=API_KEY,
        OTEL_ENABLED=False,
        OTEL_EXPORTER_OTLP_ENDPOINT="",
        ANALYSIS_TIMEOUT=5.0,
    )


@pytest.fixture
def analyzer() -> CountingAnalyzer:
    return CountingAnalyzer()


@pytest.fixture
def app(settings: Settings, analyzer: CountingAnalyzer) -> FastAPI:
    return create_app(settings=settings, analyzer=analyzer)


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """Create a test client with lifespan events executed.

    Args:
        app: The FastAPI app wired to the counting analyzer.

    Yields:
        TestClient: A configured test client for making requests.
    """
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"X-API-Key": API_KEY}
