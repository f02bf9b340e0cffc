"""Initialize the models package."""

from .api_response import ApiResponse
from .detect_request import DetectRequest
from .detection_result import DetectionResult
from .entity import Entity
from .health import HealthStatus

__all__ = [
    "ApiResponse",
    "DetectRequest",
    "DetectionResult",
    "Entity",
    "HealthStatus",
]
