from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import Field
from pydantic import ValidationError as PydanticValidationError

from structure_relay.core.common.exceptions import ValidationError
from structure_relay.core.domain.base import ValueObject


class StructureRequest(ValueObject):
    """A caller's request to structure a document with a chosen backend."""

    instruction: str = Field(min_length=1)
    payload: str = Field(min_length=1)
    backend: str = Field(min_length=1)

    @classmethod
    def create(
        cls, instruction: Any, payload: Any, backend: Any
    ) -> StructureRequest:
        """Build a request from raw caller input.

        Raises:
            ValidationError: Naming every field that is missing, empty or not
                a string.
        """
        try:
            return cls(instruction=instruction, payload=payload, backend=backend)
        except PydanticValidationError as e:
            missing = list(
                dict.fromkeys(str(error["loc"][0]) for error in e.errors() if error["loc"])
            )
            raise ValidationError(
                f"{', '.join(missing)} must be non-empty strings",
                {"missing": missing},
            ) from None


@dataclass
class UpstreamRequest:
    """A protocol-specific request ready to be sent to a backend."""

    backend: str
    url: str
    headers: dict[str, str]
    body: dict[str, Any]
    stream: bool = False
    # Safe-to-log rendering of ``url``
    display_url: str = field(default="", repr=False)

    def __post_init__(self) -> None:
        if not self.display_url:
            self.display_url = self.url
