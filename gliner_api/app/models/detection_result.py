"""Response payload for PII detection."""

from pydantic import BaseModel, Field

from .entity import Entity


class DetectionResult(BaseModel):
    entities: list[Entity] = Field(..., description="Entities ordered by (sequence, start)")
    text: str = Field(..., description="The submitted text, returned verbatim")
    total_entities: int = Field(..., ge=0, description="Number of entities returned")
    message: str | None = Field(default=None, description="Status of the detection run")
