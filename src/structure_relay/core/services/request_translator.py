from __future__ import annotations

import logging

from structure_relay.connectors import adapter_registry
from structure_relay.connectors.base import ProtocolAdapter
from structure_relay.connectors.registry import AdapterRegistry
from structure_relay.core.domain.backend import BackendDescriptor
from structure_relay.core.domain.requests import StructureRequest, UpstreamRequest

logger = logging.getLogger(__name__)


class RequestTranslator:
    """Turns an abstract structuring request into a backend-specific request."""

    def __init__(self, adapters: AdapterRegistry | None = None) -> None:
        self._adapters = adapters if adapters is not None else adapter_registry

    def adapter_for(self, descriptor: BackendDescriptor) -> ProtocolAdapter:
        """Return the adapter for the descriptor's protocol.

        Raises:
            ConfigurationError: If the protocol kind is not recognized.
        """
        return self._adapters.get_adapter(descriptor.protocol)

    def translate(
        self, descriptor: BackendDescriptor, request: StructureRequest
    ) -> UpstreamRequest:
        """Build a fresh upstream request.

        Raises:
            ConfigurationError: If the protocol kind is not recognized.
            CredentialMissingError: If a required credential is not configured.
        """
        adapter = self.adapter_for(descriptor)
        credential = descriptor.resolve_credential()
        upstream = adapter.build_request(descriptor, request, credential)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Translated request for backend=%s protocol=%s model=%s stream=%s url=%s",
                descriptor.identifier,
                adapter.protocol.value,
                descriptor.model,
                upstream.stream,
                upstream.display_url,
            )
        return upstream
