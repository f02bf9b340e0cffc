"""Build the uniform ``{success, data, message}`` envelopes."""

from typing import TypeVar

from gliner_api.app.errors import ErrorKind
from gliner_api.app.models import ApiResponse, DetectionResult

T = TypeVar("T")

DETECTION_COMPLETED = "PII detection completed successfully"


def build_payload(value: T) -> ApiResponse[T]:
    """Wrap any successful payload."""
    return ApiResponse(success=True, data=value, message=None)


def build_success(result: DetectionResult) -> ApiResponse[DetectionResult]:
    """Wrap a detection result, stamping its confirmation message."""
    return ApiResponse[DetectionResult](
        success=True,
        data=result.model_copy(update={"message": DETECTION_COMPLETED}),
        message=None,
    )


def build_failure(kind: ErrorKind, detail: str | None = None) -> ApiResponse[None]:
    """Build a failure envelope from a category and optional caller-safe text.

    Callers must only pass ``detail`` text written for clients; engine
    errors and tracebacks are logged, never passed here.
    """
    return ApiResponse[None](
        success=False,
        data=None,
        message=f"{kind.value}: {detail or kind.default_message}",
        error=kind,
    )
