"""Wire-level error envelope returned for every failed request."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class FieldViolation(BaseModel):
    """One invalid input field, nested for object-valued fields."""

    property: str
    value: Any = None
    constraints: dict[str, str] = Field(default_factory=dict)
    children: list[FieldViolation] = Field(default_factory=list)


class ErrorEnvelope(BaseModel):
    """``{code, message, details?, traceId?, timestamp, path}``.

    ``code`` is always the HTTP status the envelope is sent with.
    """

    code: int
    message: str
    details: Any | None = None
    trace_id: str | None = Field(default=None, serialization_alias="traceId")
    timestamp: str
    path: str

    def to_body(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
