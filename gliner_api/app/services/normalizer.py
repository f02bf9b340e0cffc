"""Turn raw engine spans into canonical, non-overlapping entities.

Engine tokenization does not always line up with character boundaries, so
every span is checked before it reaches a client:

* offsets are clamped to the segment and empty ranges are dropped;
* the entity text is the literal slice of the segment, and blank slices are
  dropped;
* labels must be strings in the allowed vocabulary (compared
  case-insensitively);
* scores must be finite numbers inside ``[0, 1]``; booleans are rejected.

Overlapping spans are resolved greedily: the higher probability wins, then
the earlier start, then the longer span. Malformed spans are discarded and
never fail the request.
"""

import logging
import math
from collections.abc import Collection, Iterable, Mapping
from typing import Any, NamedTuple

from gliner_api.app.models import Entity
from gliner_api.app.services.engine import SpanLike

logger = logging.getLogger(__name__)


class _Candidate(NamedTuple):
    start: int
    end: int
    label: str
    probability: float

    def overlaps(self, other: "_Candidate") -> bool:
        return self.start < other.end and other.start < self.end

    @property
    def rank(self) -> tuple[float, int, int]:
        return (-self.probability, self.start, -(self.end - self.start))


def _field(raw: SpanLike, name: str) -> Any:
    if isinstance(raw, Mapping):
        return raw[name]
    return getattr(raw, name)


def _read_span(raw: SpanLike, text_length: int, allowed: frozenset[str]) -> _Candidate | None:
    try:
        values = [_field(raw, name) for name in ("start", "end", "label", "score")]
    except (KeyError, AttributeError, TypeError):
        return None
    if not isinstance(values[2], str) or any(isinstance(v, bool) for v in values):
        return None

    try:
        start = int(values[0])
        end = int(values[1])
        score = float(values[3])
    except (TypeError, ValueError, OverflowError):
        return None
    label = values[2].strip().lower()

    start = min(max(start, 0), text_length)
    end = min(max(end, 0), text_length)
    if start >= end:
        return None
    if not label or (allowed and label not in allowed):
        return None
    if not math.isfinite(score) or not 0.0 <= score <= 1.0:
        return None
    return _Candidate(start, end, label, score)


def normalize(
    raw_spans: Iterable[SpanLike],
    source_text: str,
    allowed_labels: Collection[str] = (),
) -> list[Entity]:
    """Normalize the raw spans of one segment.

    Args:
        raw_spans: Spans yielded by the engine for ``source_text``. Consumed once.
        source_text: The segment the offsets refer to.
        allowed_labels: Accepted labels; empty accepts any non-empty label.

    Returns:
        Entities sorted by start offset, with ``sequence`` left at 0.
    """
    allowed = frozenset(label.strip().lower() for label in allowed_labels)
    candidates = []
    dropped = 0
    for raw in raw_spans:
        candidate = _read_span(raw, len(source_text), allowed)
        if candidate is None or not source_text[candidate.start : candidate.end].strip():
            dropped += 1
            continue
        candidates.append(candidate)

    kept: list[_Candidate] = []
    for candidate in sorted(candidates, key=lambda c: c.rank):
        if not any(candidate.overlaps(other) for other in kept):
            kept.append(candidate)

    if dropped or len(kept) < len(candidates):
        logger.debug(
            "Dropped %d malformed and %d overlapping spans",
            dropped,
            len(candidates) - len(kept),
        )

    kept.sort(key=lambda c: c.start)
    return [
        Entity(
            text=source_text[c.start : c.end],
            label=c.label,
            probability=c.probability,
            start=c.start,
            end=c.end,
        )
        for c in kept
    ]
