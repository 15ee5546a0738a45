"""LLM provider capabilities and the name → capability registry."""

from agentflow.providers.llm import LiteLLMProvider, default_registry
from agentflow.providers.registry import ProviderCapability, ProviderRegistry

__all__ = ["LiteLLMProvider", "ProviderCapability", "ProviderRegistry", "default_registry"]
