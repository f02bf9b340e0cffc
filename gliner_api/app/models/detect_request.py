"""Model for a single PII detection request."""

from pydantic import BaseModel, ConfigDict, Field


class DetectRequest(BaseModel):
    model_config = ConfigDict(strict=True)

    text: str = Field(..., description="The text to scan for PII")
    labels: list[str] | None = Field(
        default=None,
        description="Optional subset of the configured label vocabulary",
    )
