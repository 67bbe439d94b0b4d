"""Response envelope shared by every endpoint."""

from typing import Any

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """One validation or policy violation."""

    field: str | None = Field(default=None, description="Offending field, when known")
    message: str


class Envelope(BaseModel):
    """{success, message, data?, errors?} wrapper for all responses."""

    success: bool
    message: str
    data: Any = None
    errors: list[ErrorDetail] | None = None


def ok(message: str, data: Any = None) -> Envelope:
    """Success envelope. `data` is always present, possibly null."""
    return Envelope(success=True, message=message, data=data)
