from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class ValueObject(BaseModel):
    """Base class for immutable domain values compared by content."""

    model_config = ConfigDict(frozen=True, extra="forbid")
