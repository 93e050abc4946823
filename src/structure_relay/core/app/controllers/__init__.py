"""
API Controllers

Controllers bind HTTP routes to the relay services and are registered on the
application by ``register_routes``.
"""

from fastapi import Depends, FastAPI, Request, Response
from fastapi.responses import PlainTextResponse

from structure_relay.core.app.controllers.structure_controller import (
    StructureController,
)
from structure_relay.core.transport.fastapi.request_adapters import (
    StructureRequestBody,
)


def get_structure_controller(request: Request) -> StructureController:
    controller = getattr(request.app.state, "structure_controller", None)
    if controller is None:
        raise RuntimeError("StructureController is not initialized")
    return controller


def register_routes(app: FastAPI) -> None:
    """Attach the relay routes to ``app``."""

    @app.get("/", response_class=PlainTextResponse)
    async def root() -> str:
        return "LLM structure relay is running!"

    @app.get("/api/backends")
    async def list_backends(
        controller: StructureController = Depends(get_structure_controller),
    ) -> dict:
        return controller.list_backends()

    @app.post("/api/llm-structure")
    async def llm_structure(
        request: Request,
        body: StructureRequestBody,
        controller: StructureController = Depends(get_structure_controller),
    ) -> Response:
        return await controller.handle_structure(request, body)


__all__ = ["StructureController", "get_structure_controller", "register_routes"]
