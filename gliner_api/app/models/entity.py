"""Model representing a detected PII entity."""

from pydantic import BaseModel, Field


class Entity(BaseModel):
    text: str = Field(..., min_length=1, description="Exact substring of the input segment")
    label: str = Field(..., min_length=1, description="PII category of the span")
    probability: float = Field(..., ge=0.0, le=1.0, description="Engine confidence score")
    sequence: int = Field(default=0, ge=0, description="Index of the input segment")
    start: int = Field(..., ge=0, description="Start offset within the segment")
    end: int = Field(..., ge=0, description="End offset (exclusive) within the segment")
