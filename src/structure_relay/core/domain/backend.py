from __future__ import annotations

from enum import Enum

from pydantic import Field

from structure_relay.core.common.exceptions import CredentialMissingError
from structure_relay.core.domain.base import ValueObject


class ProtocolKind(str, Enum):
    """Wire protocols spoken by the supported upstream backends."""

    CHAT_COMPLETIONS = "chat-completions"
    GENERATE_CONTENT = "generate-content"


class BackendDescriptor(ValueObject):
    """Connection and protocol description of one upstream backend.

    ``protocol`` holds the configured protocol name verbatim; it is matched
    against :class:`ProtocolKind` when a request is translated.
    """

    identifier: str = Field(min_length=1)
    protocol: str
    api_url: str = Field(min_length=1)
    model: str = Field(min_length=1)
    streamable: bool = False
    requires_credential: bool = False
    credential: str | None = Field(default=None, repr=False)

    @property
    def has_credential(self) -> bool:
        return bool(self.credential)

    def resolve_credential(self) -> str | None:
        """Return the credential to send, or raise if a required one is absent."""
        if self.requires_credential and not self.credential:
            raise CredentialMissingError(self.identifier)
        return self.credential or None
