"""Per-request detection pipeline.

A request moves through validation, one engine call per segment,
normalization, aggregation and finally the response builder. Only
validation and the engine call can fail; both failures are turned into a
failure envelope here so that callers always get an ``ApiResponse`` back.
"""

import logging
from collections.abc import Collection

from pydantic import ValidationError

from gliner_api.app.errors import DetectionError, EngineFailureError, InvalidInputError
from gliner_api.app.models import ApiResponse, DetectionResult, DetectRequest, Entity
from gliner_api.app.prometheus import track_detection_failure, track_pii_entity
from gliner_api.app.services.aggregator import aggregate
from gliner_api.app.services.engine import EntityExtractionEngine
from gliner_api.app.services.normalizer import normalize
from gliner_api.app.services.response_builder import build_failure, build_success
from gliner_api.app.services.segmenter import split_segments
from gliner_api.app.telemetry import trace_method

logger = logging.getLogger(__name__)


def _describe_validation_error(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"]) or "body"
    if first["type"] == "missing":
        return f"missing required field '{location}'"
    if first["type"] == "json_invalid":
        return "body is not valid JSON"
    if location == "body" or first["type"] == "model_type":
        return "body must be a JSON object"
    return f"invalid value for '{location}'"


class DetectionOrchestrator:
    """Runs PII detection for one request at a time.

    The orchestrator holds no per-request state, so one instance (and the
    engine it references) is shared by all concurrent requests.

    Attributes:
        engine: The process-wide entity extraction engine.
        labels: Label vocabulary used when a request does not narrow it.
        segment_strategy: Strategy passed to split_segments.
        max_text_length: Longest accepted text, in characters.
    """

    def __init__(
        self,
        engine: EntityExtractionEngine,
        labels: Collection[str],
        segment_strategy: str = "single",
        max_text_length: int | None = None,
    ) -> None:
        self.engine = engine
        self.labels = frozenset(label.strip().lower() for label in labels if label.strip())
        self.segment_strategy = segment_strategy
        self.max_text_length = max_text_length

    @trace_method("pii_detect")
    def handle(self, request_body: bytes | str | None) -> ApiResponse[DetectionResult]:
        """Detect PII in a raw JSON request body.

        Args:
            request_body: The undecoded request body, ``{"text": str, "labels"?: [str]}``.

        Returns:
            A success envelope with the DetectionResult, or a failure envelope
            describing an InvalidInput or EngineFailure condition.
        """
        try:
            request, labels = self._validate(request_body)
            segments = split_segments(request.text, self.segment_strategy)
            per_segment = [self._detect_segment(segment, labels) for segment in segments]
        except DetectionError as e:
            track_detection_failure(e.kind.value)
            return build_failure(e.kind, e.detail)

        result = aggregate(per_segment, request.text)
        for entity in result.entities:
            track_pii_entity(entity.label)
        logger.info(
            "Detected %d entities across %d segments (%d chars)",
            result.total_entities,
            len(segments),
            len(request.text),
        )
        return build_success(result)

    def _validate(self, request_body: bytes | str | None) -> tuple[DetectRequest, frozenset[str]]:
        if request_body is None or not request_body.strip():
            raise InvalidInputError("request body is required")

        try:
            request = DetectRequest.model_validate_json(request_body)
        except ValidationError as e:
            raise InvalidInputError(_describe_validation_error(e)) from e

        if self.max_text_length is not None and len(request.text) > self.max_text_length:
            raise InvalidInputError(
                f"text exceeds the maximum length of {self.max_text_length} characters"
            )

        if request.labels is None:
            return request, self.labels

        requested = frozenset(label.strip().lower() for label in request.labels)
        unknown = sorted(requested - self.labels)
        if unknown:
            raise InvalidInputError(f"unsupported labels: {', '.join(unknown)}")
        return request, requested

    def _detect_segment(self, segment: str, labels: frozenset[str]) -> list[Entity]:
        if not labels:
            return []
        try:
            raw_spans = list(self.engine.extract(segment, labels))
        except Exception as e:
            logger.exception("Entity extraction engine failed on a %d-char segment", len(segment))
            raise EngineFailureError() from e
        return normalize(raw_spans, segment, labels)
