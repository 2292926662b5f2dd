"""Runs the document analyzer and projects its output into response models."""

import logging
import threading
import time
from typing import Callable, Sequence, TypeVar

import anyio
import anyio.to_thread
from pydantic import BaseModel, ValidationError

from prose_fastapi.app.exceptions import (
    AnalysisError,
    AnalyzerUnavailableError,
    EncodingError,
)
from prose_fastapi.app.models import Entity, Sentence, Token
from prose_fastapi.app.prometheus import track_analysis, track_analysis_failure
from prose_fastapi.app.services.analyzer import AnalyzedDocument, DocumentAnalyzer

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class _SlotClaim:
    """Hands one capacity slot to either the worker thread or the caller.

    The worker claims the slot when it starts and releases it when the
    analyzer returns. If the caller gives up before the worker started, the
    caller claims and releases it instead.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._owner: str | None = None

    def take(self, owner: str) -> bool:
        with self._lock:
            if self._owner is None:
                self._owner = owner
                return True
            return False


class AnalysisAdapter:
    """Invokes a DocumentAnalyzer once per request and shapes its output.

    Attributes:
        analyzer: The document analyzer to call.
        timeout: Seconds a single analysis may run before it is reported as
            failed.
        enabled: Projection kinds ("tokens", "sentences", "entities") this
            adapter serves.
        max_workers: Analyses allowed to occupy a thread at once, counting
            threads still finishing work abandoned after a timeout.
    """

    def __init__(
        self,
        analyzer: DocumentAnalyzer,
        timeout: float = 10.0,
        enabled: Sequence[str] = ("tokens", "sentences", "entities"),
        max_workers: int = 8,
    ) -> None:
        self.analyzer = analyzer
        self.timeout = timeout
        self.enabled = frozenset(enabled)
        self.max_workers = max_workers
        self._slots = threading.BoundedSemaphore(max_workers)

    async def tokens(self, text: str) -> list[Token]:
        return await self._project(
            "tokens",
            text,
            lambda doc: [
                Token(tag=token.tag, text=token.text, label=token.label)
                for token in doc.tokens
            ],
        )

    async def entities(self, text: str) -> list[Entity]:
        return await self._project(
            "entities",
            text,
            lambda doc: [Entity(text=ent.text, label=ent.label) for ent in doc.entities],
        )

    async def sentences(self, text: str) -> list[Sentence]:
        return await self._project(
            "sentences",
            text,
            lambda doc: [Sentence(text=sentence.text) for sentence in doc.sentences],
        )

    async def _project(
        self,
        kind: str,
        text: str,
        shape: Callable[[AnalyzedDocument], list[ModelT]],
    ) -> list[ModelT]:
        if kind not in self.enabled:
            raise AnalyzerUnavailableError(f"{kind.capitalize()} analysis is disabled")

        start = time.perf_counter()
        doc = await self._analyze(kind, text)
        duration = time.perf_counter() - start

        try:
            items = shape(doc)
        except (ValidationError, AttributeError, TypeError) as e:
            logger.error("Analyzer returned malformed %s: %s", kind, e)
            raise EncodingError(f"Analyzer returned malformed {kind}") from e

        track_analysis(kind, len(items), duration)
        logger.info("Returning %d %s", len(items), kind)
        return items

    def _run_analyzer(self, text: str, claim: _SlotClaim) -> AnalyzedDocument | None:
        if not claim.take("worker"):
            # The caller gave up before this thread started
            return None
        try:
            return self.analyzer.analyze(text)
        finally:
            self._slots.release()

    async def _analyze(self, kind: str, text: str) -> AnalyzedDocument:
        if not self._slots.acquire(blocking=False):
            track_analysis_failure(kind)
            logger.warning("All %d analyzer workers are busy", self.max_workers)
            raise AnalyzerUnavailableError("Analyzer is at capacity, retry later")

        claim = _SlotClaim()
        try:
            with anyio.fail_after(self.timeout):
                # The worker thread is abandoned, not interrupted, on timeout
                return await anyio.to_thread.run_sync(
                    self._run_analyzer, text, claim, abandon_on_cancel=True
                )
        except TimeoutError as e:
            track_analysis_failure(kind)
            logger.error("Analysis timed out after %.1fs", self.timeout)
            raise AnalysisError(f"Analysis timed out after {self.timeout:g} seconds") from e
        except AnalysisError:
            track_analysis_failure(kind)
            raise
        except Exception as e:
            track_analysis_failure(kind)
            logger.exception("Unexpected error during analysis")
            raise AnalysisError("Document analyzer failed") from e
        finally:
            if claim.take("caller"):
                self._slots.release()
