"""Combine per-segment entities into one detection result."""

from collections.abc import Sequence

from gliner_api.app.models import DetectionResult, Entity


def aggregate(
    per_segment_entities: Sequence[Sequence[Entity]],
    source_text: str,
    message: str | None = None,
) -> DetectionResult:
    """Concatenate segment results in order, stamping each entity's sequence.

    Args:
        per_segment_entities: Normalized entities for each segment, in segment order.
        source_text: The text submitted by the client, returned verbatim.
        message: Optional status message for the result.

    Returns:
        A DetectionResult whose total_entities matches its entity count.
    """
    entities = [
        entity.model_copy(update={"sequence": index})
        for index, segment_entities in enumerate(per_segment_entities)
        for entity in segment_entities
    ]
    return DetectionResult(
        entities=entities,
        text=source_text,
        total_entities=len(entities),
        message=message,
    )
