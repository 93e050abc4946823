"""
Protocol adapters for the supported backend wire formats.

Importing this package registers every adapter with ``adapter_registry``.
A new protocol kind only needs a new module here that calls
``adapter_registry.register_adapter()`` at import time, plus an import below.
"""

from .base import ProtocolAdapter
from .gemini import GenerateContentAdapter
from .openai import ChatCompletionsAdapter
from .registry import adapter_registry

__all__ = [
    "ChatCompletionsAdapter",
    "GenerateContentAdapter",
    "ProtocolAdapter",
    "adapter_registry",
]
