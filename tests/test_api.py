"""API endpoint tests."""

from http import HTTPStatus
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from prose_fastapi.app.config import Settings
from prose_fastapi.app.exceptions import AnalysisError
from prose_fastapi.app.main import create_app
from prose_fastapi.app.services.analyzer import AnalyzedDocument, DocToken

from .conftest import CountingAnalyzer

TEXT = "Ian is Dutch."


def test_health_check_without_credentials(client: TestClient, analyzer: CountingAnalyzer) -> None:
    """Ensure the health check needs no API key and reports the service as up."""
    response = client.get("/health")
    assert response.status_code == HTTPStatus.OK
    assert response.json() == {"status": "UP"}
    assert analyzer.calls == 0


def test_tokens_happy_path(client: TestClient, auth_headers: dict[str, str]) -> None:
    response = client.post("/tokens", json={"text": TEXT}, headers=auth_headers)

    assert response.status_code == HTTPStatus.OK
    tokens = response.json()
    assert tokens == [
        {"tag": "NNP", "text": "Ian", "label": "B-PERSON"},
        {"tag": "NN", "text": "is", "label": "O"},
        {"tag": "NNP", "text": "Dutch", "label": "B-NORP"},
        {"tag": ".", "text": ".", "label": "O"},
    ]
    assert "".join(token["text"] for token in tokens) == TEXT.replace(" ", "")


def test_entities_happy_path(client: TestClient, auth_headers: dict[str, str]) -> None:
    response = client.post("/entities", json={"text": TEXT}, headers=auth_headers)

    assert response.status_code == HTTPStatus.OK
    assert response.json() == [
        {"text": "Ian", "label": "PERSON"},
        {"text": "Dutch", "label": "NORP"},
    ]


def test_entities_repeated_mentions_are_not_merged(
    client: TestClient, auth_headers: dict[str, str]
) -> None:
    response = client.post(
        "/entities", json={"text": "Ian met Ian in Amsterdam."}, headers=auth_headers
    )

    assert response.status_code == HTTPStatus.OK
    assert [entity["text"] for entity in response.json()] == ["Ian", "Ian", "Amsterdam"]


def test_entities_empty_result_is_success(
    client: TestClient, auth_headers: dict[str, str]
) -> None:
    """No entities in valid text is an empty list, not an error."""
    response = client.post("/entities", json={"text": "the cat sat."}, headers=auth_headers)

    assert response.status_code == HTTPStatus.OK
    assert response.json() == []


def test_sentences_preserve_order(client: TestClient, auth_headers: dict[str, str]) -> None:
    text = "Ian is Dutch. He lives in Amsterdam! Does he cycle?"
    response = client.post("/sentences", json={"text": text}, headers=auth_headers)

    assert response.status_code == HTTPStatus.OK
    assert response.json() == [
        {"text": "Ian is Dutch."},
        {"text": "He lives in Amsterdam!"},
        {"text": "Does he cycle?"},
    ]


def test_tokens_preserve_analyzer_order(settings: Settings, auth_headers: dict[str, str]) -> None:
    """Tokens come back exactly in the order the analyzer produced them."""

    class ReversedAnalyzer:
        def analyze(self, text: str) -> AnalyzedDocument:
            return AnalyzedDocument(
                tokens=(
                    DocToken(text="c", tag="NN", label="O"),
                    DocToken(text="b", tag="NN", label="O"),
                    DocToken(text="a", tag="NN", label="O"),
                )
            )

    with TestClient(create_app(settings=settings, analyzer=ReversedAnalyzer())) as client:
        response = client.post("/tokens", json={"text": "a b c"}, headers=auth_headers)

    assert [token["text"] for token in response.json()] == ["c", "b", "a"]


def test_tokens_are_idempotent(client: TestClient, auth_headers: dict[str, str]) -> None:
    first = client.post("/tokens", json={"text": TEXT}, headers=auth_headers)
    second = client.post("/tokens", json={"text": TEXT}, headers=auth_headers)

    assert first.status_code == second.status_code == HTTPStatus.OK
    assert first.content == second.content


@pytest.mark.parametrize("path", ["/tokens", "/entities", "/sentences"])
def test_analyzer_called_once_per_request(
    client: TestClient,
    analyzer: CountingAnalyzer,
    auth_headers: dict[str, str],
    path: str,
) -> None:
    response = client.post(path, json={"text": TEXT}, headers=auth_headers)

    assert response.status_code == HTTPStatus.OK
    assert analyzer.calls == 1
    assert analyzer.texts == [TEXT]


def test_extra_fields_are_ignored(client: TestClient, auth_headers: dict[str, str]) -> None:
    response = client.post(
        "/sentences", json={"text": TEXT, "language": "en"}, headers=auth_headers
    )
    assert response.status_code == HTTPStatus.OK


@pytest.mark.parametrize("path", ["/tokens", "/entities", "/sentences"])
def test_analyzer_failure_is_server_error(
    settings: Settings, auth_headers: dict[str, str], path: str
) -> None:
    analyzer = CountingAnalyzer(error=AnalysisError("cannot build document"))

    with TestClient(create_app(settings=settings, analyzer=analyzer)) as client:
        response = client.post(path, json={"text": TEXT}, headers=auth_headers)

    assert response.status_code == HTTPStatus.INTERNAL_SERVER_ERROR
    assert response.json() == {"error": "analysis_error", "detail": "cannot build document"}


def test_unexpected_analyzer_exception_is_analysis_error(
    settings: Settings, auth_headers: dict[str, str]
) -> None:
    analyzer = CountingAnalyzer(error=RuntimeError("model crashed"))

    with TestClient(create_app(settings=settings, analyzer=analyzer)) as client:
        response = client.post("/tokens", json={"text": TEXT}, headers=auth_headers)
        # The process keeps serving after a failed request
        health = client.get("/health")

    assert response.status_code == HTTPStatus.INTERNAL_SERVER_ERROR
    data = response.json()
    assert data["error"] == "analysis_error"
    assert "model crashed" not in data["detail"]
    assert health.status_code == HTTPStatus.OK


def test_analysis_timeout_is_analysis_error(auth_headers: dict[str, str]) -> None:
    settings = Settings(API_KEY="test-secret-key", OTEL_ENABLED=False, ANALYSIS_TIMEOUT=0.05)
    analyzer = CountingAnalyzer(delay=0.5)

    with TestClient(create_app(settings=settings, analyzer=analyzer)) as client:
        response = client.post("/sentences", json={"text": TEXT}, headers=auth_headers)

    assert response.status_code == HTTPStatus.INTERNAL_SERVER_ERROR
    data = response.json()
    assert data["error"] == "analysis_error"
    assert "timed out" in data["detail"]


def test_disabled_analysis_is_unavailable(auth_headers: dict[str, str]) -> None:
    settings = Settings(API_KEY="test-secret-key", OTEL_ENABLED=False, ANALYZE_ENTITIES=False)
    analyzer = CountingAnalyzer()

    with TestClient(create_app(settings=settings, analyzer=analyzer)) as client:
        disabled = client.post("/entities", json={"text": TEXT}, headers=auth_headers)
        enabled = client.post("/tokens", json={"text": TEXT}, headers=auth_headers)

    assert disabled.status_code == HTTPStatus.SERVICE_UNAVAILABLE
    assert disabled.json()["error"] == "analyzer_unavailable"
    assert enabled.status_code == HTTPStatus.OK
    assert analyzer.calls == 1


def test_analyzer_unavailable(client: TestClient, auth_headers: dict[str, str]) -> None:
    """Test analysis endpoints when no adapter has been initialized."""
    with patch.object(client.app.state, "adapter", None):
        response = client.post("/tokens", json={"text": TEXT}, headers=auth_headers)

    assert response.status_code == HTTPStatus.SERVICE_UNAVAILABLE
    assert "Analyzer service not available" in response.json()["detail"]


def test_malformed_analyzer_output_is_encoding_error(
    settings: Settings, auth_headers: dict[str, str]
) -> None:
    class BrokenAnalyzer:
        def analyze(self, text: str) -> AnalyzedDocument:
            return AnalyzedDocument(tokens=(DocToken(text="Ian", tag=None, label="O"),))

    with TestClient(create_app(settings=settings, analyzer=BrokenAnalyzer())) as client:
        response = client.post("/tokens", json={"text": TEXT}, headers=auth_headers)

    assert response.status_code == HTTPStatus.INTERNAL_SERVER_ERROR
    assert response.json()["error"] == "encoding_error"


def test_openapi_documents_analysis_body(client: TestClient, auth_headers: dict[str, str]) -> None:
    response = client.get("/api/v1/openapi.json", headers=auth_headers)

    assert response.status_code == HTTPStatus.OK
    body = response.json()["paths"]["/tokens"]["post"]["requestBody"]
    assert "text" in body["content"]["application/json"]["schema"]["properties"]
