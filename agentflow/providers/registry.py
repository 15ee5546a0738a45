"""Provider capability protocol and the registry the engine dispatches through."""

from typing import Any, Protocol, runtime_checkable

from agentflow.exceptions import ConfigurationError
from agentflow.types import ExecutionContext


@runtime_checkable
class ProviderCapability(Protocol):
    """One LLM provider. ``invoke`` receives the already-rendered prompt."""

    async def invoke(self, model: str, prompt: str, context: ExecutionContext) -> Any:
        ...


class ProviderRegistry:
    """Maps provider names (``step.provider``) to capabilities."""

    def __init__(self, providers: dict[str, ProviderCapability] = None):
        self._providers: dict[str, ProviderCapability] = dict(providers or {})

    def register(self, name: str, provider: ProviderCapability) -> None:
        """Register *provider* under *name*, replacing any previous entry."""
        self._providers[name] = provider

    def get(self, name: str) -> ProviderCapability:
        """Return the capability registered as *name*.

        Raises:
            ConfigurationError: if no provider is registered under that name.
        """
        if name not in self._providers:
            raise ConfigurationError(f"Unknown provider: {name}")
        return self._providers[name]

    def names(self) -> list[str]:
        return sorted(self._providers)

    def __contains__(self, name: str) -> bool:
        return name in self._providers
