"""
Grounding backends, one per service invocation convention:
- in-process: direct calls on a Python class
- rpc: SOAP calls through a zeep client
- rest: REST calls through httpx, JSON decoded by pydantic
"""

from __future__ import annotations

from specground.ground.framework import GroundingBackend

from .in_process import InProcessBackend
from .rest import RestBackend
from .rpc import RpcBackend


class BackendRegistry:
    """
    Registry for grounding backends.

    Maps grounding selectors to backend implementations.
    """

    _backends: dict[str, type[GroundingBackend]] = {}

    @classmethod
    def register(cls, backend: type[GroundingBackend]) -> None:
        """Register a backend under its selector."""
        cls._backends[backend.name] = backend

    @classmethod
    def get(cls, name: str) -> type[GroundingBackend] | None:
        """Get a backend by selector."""
        return cls._backends.get(name)

    @classmethod
    def list_backends(cls) -> list[str]:
        """List registered selectors."""
        return list(cls._backends.keys())

    @classmethod
    def items(cls) -> list[tuple[str, type[GroundingBackend]]]:
        return list(cls._backends.items())


BackendRegistry.register(InProcessBackend)
BackendRegistry.register(RpcBackend)
BackendRegistry.register(RestBackend)

__all__ = [
    "BackendRegistry",
    "GroundingBackend",
    "InProcessBackend",
    "RpcBackend",
    "RestBackend",
]
