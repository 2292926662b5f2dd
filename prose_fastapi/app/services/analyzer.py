"""Document analyzer backed by a spaCy pipeline loaded through presidio."""

import logging
from dataclasses import dataclass
from typing import Any, NamedTuple, Protocol

from presidio_analyzer.nlp_engine import NlpEngine, NlpEngineProvider

from prose_fastapi.app.config import Settings
from prose_fastapi.app.exceptions import AnalysisError

logger = logging.getLogger(__name__)
# Set Presidio's logger to INFO level to suppress debug messages
logging.getLogger("presidio-analyzer").setLevel(logging.INFO)


class DocToken(NamedTuple):
    text: str
    tag: str
    label: str


class DocSentence(NamedTuple):
    text: str


class DocEntity(NamedTuple):
    text: str
    label: str


@dataclass(frozen=True)
class AnalyzedDocument:
    """Everything the analyzer produced for one text, in document order."""

    tokens: tuple[DocToken, ...] = ()
    sentences: tuple[DocSentence, ...] = ()
    entities: tuple[DocEntity, ...] = ()


class DocumentAnalyzer(Protocol):
    """Tokenizes, tags, segments and extracts entities from raw text.

    Implementations must be deterministic per input and raise
    ``AnalysisError`` when a text cannot be analyzed.
    """

    def analyze(self, text: str) -> AnalyzedDocument: ...


def iob_label(token: Any) -> str:
    """Format a spaCy token's entity annotation as an IOB label.

    Returns ``B-<TYPE>`` or ``I-<TYPE>`` inside an entity, ``O`` outside one
    and an empty string when the pipeline did not annotate the token.
    """
    iob = token.ent_iob_
    if iob in ("B", "I"):
        return f"{iob}-{token.ent_type_}"
    return iob


class SpacyDocumentAnalyzer:
    """DocumentAnalyzer over a loaded presidio NLP engine.

    Presidio's engines wrap a spaCy ``Doc`` in the ``tokens`` attribute of the
    NlpArtifacts they return, so the same projection works for the spacy,
    stanza and transformers engines.

    Attributes:
        nlp_engine: A loaded presidio NlpEngine.
        language: Language code the engine was loaded for.
    """

    def __init__(self, nlp_engine: NlpEngine, language: str = "en") -> None:
        self.nlp_engine = nlp_engine
        self.language = language

    def analyze(self, text: str) -> AnalyzedDocument:
        if not text.strip():
            raise AnalysisError("Cannot analyze blank text")

        try:
            artifacts = self.nlp_engine.process_text(text, self.language)
        except ValueError as e:
            raise AnalysisError(f"NLP engine failed: {e}") from e

        doc = artifacts.tokens
        tokens = tuple(
            DocToken(text=token.text, tag=token.tag_, label=iob_label(token))
            for token in doc
            if not token.is_space
        )
        entities = tuple(DocEntity(text=ent.text, label=ent.label_) for ent in doc.ents)
        try:
            sentences = tuple(DocSentence(text=sent.text) for sent in doc.sents)
        except ValueError as e:
            # spaCy raises E030 when the pipeline sets no sentence boundaries
            raise AnalysisError(f"Sentence segmentation unavailable: {e}") from e

        return AnalyzedDocument(tokens=tokens, sentences=sentences, entities=entities)


def get_analyzer(settings: Settings) -> SpacyDocumentAnalyzer:
    """Load the NLP engine described by the settings.

    Args:
        settings: Application settings. ``NLP_CONFIG_FILE`` takes precedence
            over ``nlp_configuration`` when set.

    Returns:
        SpacyDocumentAnalyzer: An analyzer wrapping the loaded engine.

    Raises:
        Exception: If the engine cannot be created or the model is missing.
    """
    try:
        if settings.NLP_CONFIG_FILE:
            logger.info("Loading NLP engine configuration from %s", settings.NLP_CONFIG_FILE)
            provider = NlpEngineProvider(conf_file=settings.NLP_CONFIG_FILE)
        else:
            logger.info(
                "Loading %s NLP engine with model %s",
                settings.NLP_ENGINE_NAME,
                settings.SPACY_MODEL,
            )
            provider = NlpEngineProvider(nlp_configuration=settings.nlp_configuration)

        nlp_engine = provider.create_engine()
        logger.info("NLP engine created successfully")

        return SpacyDocumentAnalyzer(nlp_engine, language=settings.LANGUAGE)
    except Exception as e:
        logger.error("Error creating analyzer: %s", str(e))
        logger.exception(e)
        raise
