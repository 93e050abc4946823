from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field

from structure_relay.core.domain.backend import BackendDescriptor
from structure_relay.core.domain.events import OutwardEvent
from structure_relay.core.domain.requests import StructureRequest
from structure_relay.core.services.backend_registry import BackendRegistry
from structure_relay.core.services.request_translator import RequestTranslator
from structure_relay.core.services.response_relay import ResponseRelay
from structure_relay.core.services.upstream_invoker import UpstreamInvoker

logger = logging.getLogger(__name__)


@dataclass
class StructureResult:
    """Outcome of one structuring request.

    Exactly one of ``events`` (buffered backends) and ``stream`` (streaming
    backends) is set.
    """

    backend: BackendDescriptor
    streaming: bool
    events: list[OutwardEvent] = field(default_factory=list)
    stream: AsyncIterator[OutwardEvent] | None = None
    # Releases the upstream connection even if ``stream`` is never iterated
    close: Callable[[], Awaitable[None]] | None = None


class StructureService:
    """Runs the per-request pipeline: resolve, translate, invoke, relay.

    Every failure up to and including the upstream status check is raised as a
    ``RelayError`` before any event exists. Failures after a stream has started
    are reported as a terminal ``error`` event by the relay.
    """

    def __init__(
        self,
        registry: BackendRegistry,
        invoker: UpstreamInvoker,
        translator: RequestTranslator | None = None,
        relay: ResponseRelay | None = None,
    ) -> None:
        self._registry = registry
        self._invoker = invoker
        self._translator = translator or RequestTranslator()
        self._relay = relay or ResponseRelay()

    @property
    def registry(self) -> BackendRegistry:
        return self._registry

    async def submit(self, instruction: str, payload: str, backend: str) -> StructureResult:
        """Validate raw fields and run the pipeline.

        Raises:
            ValidationError: If any field is missing or empty.
        """
        return await self.structure(
            StructureRequest.create(instruction, payload, backend)
        )

    async def structure(self, request: StructureRequest) -> StructureResult:
        descriptor = self._registry.resolve(request.backend)
        upstream = self._translator.translate(descriptor, request)
        adapter = self._translator.adapter_for(descriptor)

        if logger.isEnabledFor(logging.INFO):
            logger.info(
                "Structuring request: backend=%s model=%s payload_chars=%d",
                descriptor.identifier,
                descriptor.model,
                len(request.payload),
            )

        outcome = await self._invoker.invoke(upstream)
        if outcome.streaming:
            return StructureResult(
                backend=descriptor,
                streaming=True,
                stream=self._relay.relay_stream(outcome, adapter),
                close=outcome.aclose,
            )
        return StructureResult(
            backend=descriptor,
            streaming=False,
            events=self._relay.relay_buffered(outcome.body or b"", adapter),
        )
