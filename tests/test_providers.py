"""Provider registry and the litellm-backed provider capability."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from conftest import StubProvider, make_context

from agentflow.config import AgentflowConfig
from agentflow.exceptions import ConfigurationError, TransientError
from agentflow.providers.llm import DEFAULT_PROVIDERS, LiteLLMProvider, default_registry, is_local_model
from agentflow.providers.registry import ProviderCapability, ProviderRegistry


def _make_litellm_response(content="hello"):
    message = MagicMock()
    message.content = content
    choice = MagicMock()
    choice.message = message
    response = MagicMock()
    response.choices = [choice]
    return response


_CFG = AgentflowConfig(llm_temperature=0.2, llm_max_tokens=256, ollama_base_url="http://ollama:11434")


class TestProviderRegistry:

    def test_get_registered(self):
        stub = StubProvider()
        assert ProviderRegistry({"stub": stub}).get("stub") is stub

    def test_unknown_provider_raises_configuration_error(self):
        with pytest.raises(ConfigurationError, match="Unknown provider: missing"):
            ProviderRegistry().get("missing")

    def test_register_replaces(self):
        registry = ProviderRegistry({"a": StubProvider()})
        replacement = StubProvider()
        registry.register("a", replacement)
        assert registry.get("a") is replacement
        assert "a" in registry
        assert registry.names() == ["a"]

    def test_stub_satisfies_protocol(self):
        assert isinstance(StubProvider(), ProviderCapability)

    def test_default_registry_covers_builtin_providers(self):
        registry = default_registry(_CFG)
        assert registry.names() == sorted(DEFAULT_PROVIDERS)
        assert isinstance(registry.get("openai"), LiteLLMProvider)


class TestRouting:

    def test_model_is_prefixed(self):
        assert LiteLLMProvider("openai", cfg=_CFG).route("gpt-4o-mini") == "openai/gpt-4o-mini"

    def test_already_routed_model_kept(self):
        assert LiteLLMProvider("ollama", cfg=_CFG).route("ollama/llama3") == "ollama/llama3"

    def test_is_local_model(self):
        assert is_local_model("ollama/llama3")
        assert is_local_model("ollama_chat/llama3")
        assert not is_local_model("openai/gpt-4o")


@pytest.mark.asyncio
class TestLiteLLMProviderInvoke:

    async def test_returns_completion_text(self):
        with patch("agentflow.providers.llm.litellm.acompletion",
                   new=AsyncMock(return_value=_make_litellm_response("world"))):
            result = await LiteLLMProvider("openai", cfg=_CFG).invoke("gpt-4o", "hi", make_context())
        assert result == "world"

    async def test_sends_prompt_and_config(self):
        with patch("agentflow.providers.llm.litellm.acompletion", new_callable=AsyncMock) as mock_comp:
            mock_comp.return_value = _make_litellm_response()
            provider = LiteLLMProvider("anthropic", system_prompt="Be brief.", cfg=_CFG)
            await provider.invoke("claude-sonnet-4", "Summarize", make_context())

        kwargs = mock_comp.call_args.kwargs
        assert kwargs["model"] == "anthropic/claude-sonnet-4"
        assert kwargs["messages"] == [
            {"role": "system", "content": "Be brief."},
            {"role": "user", "content": "Summarize"},
        ]
        assert kwargs["temperature"] == 0.2
        assert kwargs["max_tokens"] == 256
        assert "api_base" not in kwargs

    async def test_api_key_taken_from_resolved_secret(self):
        ctx = make_context(secrets={"openai": "sk-from-secret"})
        with patch("agentflow.providers.llm.litellm.acompletion", new_callable=AsyncMock) as mock_comp:
            mock_comp.return_value = _make_litellm_response()
            await LiteLLMProvider("openai", cfg=_CFG).invoke("gpt-4o", "hi", ctx)
        assert mock_comp.call_args.kwargs["api_key"] == "sk-from-secret"

    async def test_custom_secret_alias(self):
        ctx = make_context(secrets={"team_key": "sk-team", "openai": "sk-other"})
        with patch("agentflow.providers.llm.litellm.acompletion", new_callable=AsyncMock) as mock_comp:
            mock_comp.return_value = _make_litellm_response()
            await LiteLLMProvider("openai", secret_alias="team_key", cfg=_CFG).invoke("gpt-4o", "hi", ctx)
        assert mock_comp.call_args.kwargs["api_key"] == "sk-team"

    async def test_unresolved_secret_omits_api_key(self):
        ctx = make_context(secrets={"openai": None})
        with patch("agentflow.providers.llm.litellm.acompletion", new_callable=AsyncMock) as mock_comp:
            mock_comp.return_value = _make_litellm_response()
            await LiteLLMProvider("openai", cfg=_CFG).invoke("gpt-4o", "hi", ctx)
        assert "api_key" not in mock_comp.call_args.kwargs

    async def test_ollama_gets_api_base(self):
        with patch("agentflow.providers.llm.litellm.acompletion", new_callable=AsyncMock) as mock_comp:
            mock_comp.return_value = _make_litellm_response()
            await LiteLLMProvider("ollama", cfg=_CFG).invoke("llama3", "hi", make_context())
        assert mock_comp.call_args.kwargs["api_base"] == "http://ollama:11434"

    async def test_none_content_becomes_empty_string(self):
        with patch("agentflow.providers.llm.litellm.acompletion",
                   new=AsyncMock(return_value=_make_litellm_response(None))):
            result = await LiteLLMProvider("openai", cfg=_CFG).invoke("gpt-4o", "hi", make_context())
        assert result == ""

    async def test_provider_error_is_transient(self):
        with patch("agentflow.providers.llm.litellm.acompletion",
                   new=AsyncMock(side_effect=RuntimeError("rate limited"))):
            with pytest.raises(TransientError, match="rate limited"):
                await LiteLLMProvider("openai", cfg=_CFG).invoke("gpt-4o", "hi", make_context())

    async def test_empty_choices_is_transient(self):
        response = MagicMock()
        response.choices = []
        with patch("agentflow.providers.llm.litellm.acompletion", new=AsyncMock(return_value=response)):
            with pytest.raises(TransientError, match="No response"):
                await LiteLLMProvider("openai", cfg=_CFG).invoke("gpt-4o", "hi", make_context())
