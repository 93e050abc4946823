from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from structure_relay.core.common.exceptions import UnknownBackendError
from structure_relay.core.config.app_config import AppConfig, BackendConfig
from structure_relay.core.domain.backend import BackendDescriptor

logger = logging.getLogger(__name__)


class BackendRegistry:
    """Read-only lookup of configured backends by identifier.

    Built once at startup from an explicit configuration value; it holds no
    per-request state and may be shared by concurrent requests.
    """

    def __init__(self, descriptors: Iterable[BackendDescriptor]) -> None:
        self._descriptors: dict[str, BackendDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.identifier in self._descriptors:
                raise ValueError(
                    f"Backend '{descriptor.identifier}' is configured more than once."
                )
            self._descriptors[descriptor.identifier] = descriptor

    @classmethod
    def from_backend_configs(
        cls, backends: Mapping[str, BackendConfig]
    ) -> BackendRegistry:
        return cls(
            BackendDescriptor(
                identifier=name,
                protocol=cfg.protocol,
                api_url=cfg.api_url,
                model=cfg.model,
                streamable=cfg.streaming,
                requires_credential=cfg.requires_api_key,
                credential=cfg.api_key,
            )
            for name, cfg in backends.items()
        )

    @classmethod
    def from_config(cls, config: AppConfig) -> BackendRegistry:
        return cls.from_backend_configs(config.backends)

    def resolve(self, identifier: str) -> BackendDescriptor:
        """Return the descriptor for ``identifier``.

        Raises:
            UnknownBackendError: If no backend with that identifier exists.
        """
        descriptor = self._descriptors.get(identifier)
        if descriptor is None:
            raise UnknownBackendError(identifier, self.identifiers())
        return descriptor

    def identifiers(self) -> list[str]:
        return list(self._descriptors.keys())

    def descriptors(self) -> list[BackendDescriptor]:
        return list(self._descriptors.values())

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._descriptors

    def __len__(self) -> int:
        return len(self._descriptors)
