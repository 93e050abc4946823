"""
FastAPI request adapters.

Inbound JSON models and their conversion to domain requests.
"""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from structure_relay.core.domain.requests import StructureRequest


class StructureRequestBody(BaseModel):
    """Body of ``POST /api/llm-structure``.

    Fields are optional here so that missing values are reported by the
    domain request as a ``ValidationError`` with every missing field named.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    raw_text: str | None = Field(
        default=None, validation_alias=AliasChoices("rawText", "payload", "raw_text")
    )
    llm_prompt: str | None = Field(
        default=None,
        validation_alias=AliasChoices("llmPrompt", "instruction", "llm_prompt"),
    )
    backend: str | None = None


def to_domain_request(body: StructureRequestBody) -> StructureRequest:
    """Convert the inbound body to a validated domain request.

    Raises:
        ValidationError: If any field is missing or empty.
    """
    return StructureRequest.create(body.llm_prompt, body.raw_text, body.backend)
