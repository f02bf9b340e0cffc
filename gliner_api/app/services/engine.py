"""Entity extraction engines consumed by the detection orchestrator.

An engine turns one text and a label vocabulary into a lazy, one-shot
sequence of raw spans. Offsets, labels and scores are not trusted: the span
normalizer validates everything an engine yields.

Models are loaded once per process, on first use (or eagerly through
``warm_up``), and are read-only afterwards so a single engine instance is
shared by every in-flight request.
"""

import logging
import re
import threading
from collections.abc import Collection, Iterator, Mapping
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Protocol, Union

from presidio_analyzer import AnalyzerEngine
from presidio_analyzer.nlp_engine import NlpEngineProvider

from gliner_api.app.config import settings

logger = logging.getLogger(__name__)

# Same word splitting as GLiNER's whitespace token splitter.
_WORD_TOKEN = re.compile(r"\w+(?:[-_]\w+)*|\S")


@dataclass(frozen=True)
class RawSpan:
    """One unvalidated span as produced by an engine."""

    start: int
    end: int
    label: str
    score: float


SpanLike = Union[RawSpan, Mapping[str, Any]]


class EntityExtractionEngine(Protocol):
    """Protocol that concrete engine adapters must implement."""

    def extract(self, text: str, labels: Collection[str]) -> Iterator[SpanLike]:
        """Yield raw spans for ``text`` restricted to ``labels``."""

    def warm_up(self) -> None:
        """Perform the one-time initialization ahead of the first request."""


class _LazyModelEngine:
    """Base for engines whose backing model is expensive to load."""

    def __init__(self) -> None:
        self._model: Any = None
        self._lock = threading.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    def warm_up(self) -> None:
        self._get_model()

    def _get_model(self) -> Any:
        if self._model is None:
            with self._lock:
                if self._model is None:
                    self._model = self._load()
        return self._model

    def _load(self) -> Any:
        raise NotImplementedError


class GlinerEngine(_LazyModelEngine):
    """GLiNER span labeler, prompted with the label vocabulary at call time.

    GLiNER truncates any input longer than its context window, so texts are
    scanned in overlapping windows of ``chunk_length`` tokens. Window spans
    are shifted back to offsets in the full text; duplicates found in the
    overlap are left to the span normalizer.

    Attributes:
        model_name: Hugging Face identifier or local path of the model.
        threshold: Minimum score GLiNER keeps when decoding spans.
        chunk_length: Window size, in GLiNER word tokens.
        overlap: Tokens shared by consecutive windows.
    """

    def __init__(
        self,
        model_name: str,
        threshold: float = 0.5,
        chunk_length: int = 384,
        overlap: int = 128,
    ) -> None:
        if chunk_length <= 0 or not 0 <= overlap < chunk_length:
            raise ValueError("overlap must be smaller than a positive chunk_length")
        super().__init__()
        self.model_name = model_name
        self.threshold = threshold
        self.chunk_length = chunk_length
        self.overlap = overlap

    def _load(self) -> Any:
        # Deferred so that importing this module does not pull in torch.
        from gliner import GLiNER

        logger.info("Loading GLiNER model %s", self.model_name)
        model = GLiNER.from_pretrained(self.model_name)
        logger.info("GLiNER model %s loaded", self.model_name)
        return model

    def windows(self, text: str) -> Iterator[tuple[int, str]]:
        """Yield ``(offset, window_text)`` pairs covering every token of ``text``."""
        tokens = [match.span() for match in _WORD_TOKEN.finditer(text)]
        if len(tokens) <= self.chunk_length:
            yield 0, text
            return

        step = self.chunk_length - self.overlap
        for first in range(0, len(tokens), step):
            last = min(first + self.chunk_length, len(tokens)) - 1
            start, end = tokens[first][0], tokens[last][1]
            yield start, text[start:end]
            if last == len(tokens) - 1:
                return

    def extract(self, text: str, labels: Collection[str]) -> Iterator[SpanLike]:
        model = self._get_model()
        ordered = sorted(labels)
        for offset, window in self.windows(text):
            predictions = model.predict_entities(window, ordered, threshold=self.threshold)
            if not offset:
                yield from predictions
                continue
            for prediction in predictions:
                yield {
                    **prediction,
                    "start": prediction["start"] + offset,
                    "end": prediction["end"] + offset,
                }


class PresidioEngine(_LazyModelEngine):
    """Presidio analyzer whose entity types are mapped onto the label vocabulary.

    Attributes:
        entity_mapping: Presidio entity names accepted for each label.
        threshold: Score threshold passed to AnalyzerEngine.analyze.
        language: Language code passed to the analyzer.
    """

    def __init__(
        self,
        entity_mapping: Mapping[str, list[str]],
        nlp_configuration: dict[str, Any],
        threshold: float = 0.5,
        language: str = "en",
    ) -> None:
        super().__init__()
        self.entity_mapping = {label.lower(): list(names) for label, names in entity_mapping.items()}
        self.nlp_configuration = nlp_configuration
        self.threshold = threshold
        self.language = language
        self._label_for_entity = {
            name: label for label, names in self.entity_mapping.items() for name in names
        }

    def _load(self) -> AnalyzerEngine:
        logger.info("Creating Presidio analyzer with %s", self.nlp_configuration)
        nlp_engine = NlpEngineProvider(nlp_configuration=self.nlp_configuration).create_engine()
        return AnalyzerEngine(nlp_engine=nlp_engine)

    def extract(self, text: str, labels: Collection[str]) -> Iterator[SpanLike]:
        entities = sorted(
            {name for label in labels for name in self.entity_mapping.get(label, [])}
        )
        if not entities:
            return
        analyzer = self._get_model()
        results = analyzer.analyze(
            text=text,
            language=self.language,
            entities=entities,
            score_threshold=self.threshold,
        )
        for result in results:
            yield RawSpan(
                start=result.start,
                end=result.end,
                label=self._label_for_entity.get(result.entity_type, result.entity_type),
                score=result.score,
            )


@lru_cache()
def get_engine() -> EntityExtractionEngine:
    """Create and cache the process-wide engine selected by ENGINE_BACKEND.

    Returns:
        The configured engine. Its model is not loaded until first use.

    Raises:
        ValueError: If ENGINE_BACKEND names an unknown backend.
    """
    backend = settings.ENGINE_BACKEND
    logger.info("Creating %s entity extraction engine", backend)
    if backend == "gliner":
        return GlinerEngine(
            settings.GLINER_MODEL,
            threshold=settings.MIN_CONFIDENCE_SCORE,
            chunk_length=settings.GLINER_CHUNK_LENGTH,
            overlap=settings.GLINER_CHUNK_OVERLAP,
        )
    if backend == "presidio":
        return PresidioEngine(
            settings.ENTITY_MAPPING,
            settings.nlp_configuration,
            threshold=settings.MIN_CONFIDENCE_SCORE,
        )
    raise ValueError(f"Unknown engine backend: {backend}")
