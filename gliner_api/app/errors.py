"""Error taxonomy for PII detection requests."""

from enum import Enum

from fastapi import status


class ErrorKind(str, Enum):
    """Failure categories reported to API clients.

    Each member carries the HTTP status used for its envelope and the
    caller-safe text used when no more specific detail is available.
    """

    INVALID_INPUT = "InvalidInput"
    ENGINE_FAILURE = "EngineFailure"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]

    @property
    def default_message(self) -> str:
        return _DEFAULT_MESSAGES[self]


_HTTP_STATUS = {
    ErrorKind.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.ENGINE_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

_DEFAULT_MESSAGES = {
    ErrorKind.INVALID_INPUT: "Request body must be a JSON object with a string 'text' field",
    ErrorKind.ENGINE_FAILURE: "Entity extraction failed, please retry later",
}


class DetectionError(Exception):
    """Base class for failures converted into failure envelopes.

    Attributes:
        kind: The failure category.
        detail: Caller-safe description, or None to use the category default.
    """

    kind: ErrorKind

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.kind.default_message)
        self.detail = detail


class InvalidInputError(DetectionError):
    kind = ErrorKind.INVALID_INPUT


class EngineFailureError(DetectionError):
    kind = ErrorKind.ENGINE_FAILURE
