from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from structure_relay.core.common.exceptions import ConfigurationError
from structure_relay.core.domain.backend import ProtocolKind

if TYPE_CHECKING:
    from structure_relay.connectors.base import ProtocolAdapter

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """A registry mapping each protocol kind to its adapter."""

    def __init__(self) -> None:
        self._adapters: dict[ProtocolKind, ProtocolAdapter] = {}

    def register_adapter(self, kind: ProtocolKind, adapter: ProtocolAdapter) -> None:
        """Registers the adapter for a protocol kind.

        Args:
            kind: The protocol the adapter speaks.
            adapter: The adapter instance. Adapters are stateless and shared.
        """
        if kind in self._adapters:
            logger.warning(
                "Adapter for protocol '%s' is already registered. Skipping registration.",
                kind.value,
            )
            return
        self._adapters[kind] = adapter

    def get_adapter(self, protocol: str | ProtocolKind) -> ProtocolAdapter:
        """Retrieves the adapter for a protocol name.

        Raises:
            ConfigurationError: If the protocol is unknown or has no adapter.
        """
        try:
            kind = ProtocolKind(protocol)
        except ValueError:
            raise ConfigurationError(
                f"Unrecognized protocol kind '{protocol}'",
                {"protocol": str(protocol)},
            ) from None
        adapter = self._adapters.get(kind)
        if adapter is None:
            raise ConfigurationError(
                f"No adapter registered for protocol kind '{kind.value}'",
                {"protocol": kind.value},
            )
        return adapter

    def get_registered_protocols(self) -> list[ProtocolKind]:
        return list(self._adapters.keys())


# Global instance of the registry
adapter_registry = AdapterRegistry()