"""litellm-backed provider capability.

litellm handles OpenAI, Anthropic, Gemini, Hugging Face, Ollama and 100+
other providers behind one ``acompletion`` call. Each
:class:`LiteLLMProvider` is bound to one litellm route prefix; the step's
``model`` is appended to it unless it already names a route::

    LiteLLMProvider("openai").invoke("gpt-4o-mini", ...)   # → "openai/gpt-4o-mini"
    LiteLLMProvider("ollama").invoke("llama3", ...)        # → "ollama/llama3"

The API key comes from the run's resolved secrets (alias defaults to the
prefix, so ``secrets: {openai: ...}`` is picked up automatically); when the
run declares no such secret litellm falls back to its own environment lookup.
"""

import logging
from typing import Optional

import litellm

from agentflow.config import AgentflowConfig, config as default_config
from agentflow.exceptions import TransientError
from agentflow.providers.registry import ProviderRegistry
from agentflow.secrets.masking import mask_secret
from agentflow.types import ExecutionContext

logger = logging.getLogger(__name__)

DEFAULT_PROVIDERS: tuple[str, ...] = ("openai", "anthropic", "gemini", "huggingface", "ollama")


def is_local_model(model: str) -> bool:
    """Return True if the model runs locally via Ollama (no API key required)."""
    return model.startswith("ollama/") or model.startswith("ollama_chat/")


class LiteLLMProvider:
    """Provider capability that completes a single user prompt via litellm."""

    def __init__(
        self,
        prefix: str,
        secret_alias: Optional[str] = None,
        system_prompt: Optional[str] = None,
        cfg: Optional[AgentflowConfig] = None,
    ):
        """
        Args:
            prefix:        litellm route prefix, e.g. "openai", "anthropic", "ollama".
            secret_alias:  Alias in ``context.secrets`` holding the API key.
                           Defaults to *prefix*.
            system_prompt: Optional system message sent before the prompt.
            cfg:           Config supplying temperature, max tokens, Ollama URL.
        """
        self.prefix = prefix
        self.secret_alias = secret_alias or prefix
        self.system_prompt = system_prompt
        self.cfg = cfg or default_config
        litellm.drop_params = True  # ignore unsupported params per provider

    def route(self, model: str) -> str:
        if model.startswith(f"{self.prefix}/"):
            return model
        return f"{self.prefix}/{model}"

    async def invoke(self, model: str, prompt: str, context: ExecutionContext) -> str:
        """Call ``litellm.acompletion`` and return the completion text.

        Raises:
            TransientError: On any provider error, so the step's retry budget applies.
        """
        routed = self.route(model)
        messages = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        messages.append({"role": "user", "content": prompt})

        kwargs = {
            "model": routed,
            "messages": messages,
            "temperature": self.cfg.llm_temperature,
            "max_tokens": self.cfg.llm_max_tokens,
        }
        api_key = context.secrets.get(self.secret_alias)
        if api_key:
            kwargs["api_key"] = api_key
            logger.debug("[LLM] Using API key %s for %s", mask_secret(api_key), routed)
        if is_local_model(routed):
            kwargs["api_base"] = self.cfg.ollama_base_url

        logger.debug("[LLM] Sending request to %s, %d chars", routed, len(prompt))
        try:
            response = await litellm.acompletion(**kwargs)
        except Exception as e:
            raise TransientError(f"LLM call failed: {e}", details={"model": routed}) from e

        if not response.choices:
            raise TransientError(f"No response received from {routed}", details={"model": routed})
        content = response.choices[0].message.content or ""
        logger.debug("[LLM] Response received from %s: %d chars", routed, len(content))
        return content


def default_registry(cfg: Optional[AgentflowConfig] = None) -> ProviderRegistry:
    """Registry with a :class:`LiteLLMProvider` for each well-known provider name."""
    return ProviderRegistry({name: LiteLLMProvider(name, cfg=cfg) for name in DEFAULT_PROVIDERS})
