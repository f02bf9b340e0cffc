"""Uniform response envelope shared by every enveloped endpoint."""

from typing import Generic, TypeVar

from pydantic import BaseModel, Field

from gliner_api.app.errors import ErrorKind

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Envelope of the form ``{success, data, message}``.

    ``error`` is never serialized; it lets the HTTP layer pick a status code
    for failure envelopes.
    """

    success: bool = Field(..., description="True iff the operation completed")
    data: T | None = Field(default=None, description="Payload on success")
    message: str | None = Field(default=None, description="Explanation on failure")
    error: ErrorKind | None = Field(default=None, exclude=True)

    @property
    def status_code(self) -> int:
        return self.error.http_status if self.error else 200
