"""Application configuration. All env vars defined here with defaults."""

from typing import Optional

from pydantic_settings import BaseSettings


class AgentflowConfig(BaseSettings):
    # ── App ──
    app_name: str = "agentflow"
    debug: bool = False
    log_level: str = "INFO"

    # ── Secrets ──
    secrets_key: Optional[str] = None          # Fernet key; ephemeral key generated when unset
    secrets_path: str = "./.agentflow/secrets.json"

    # ── Execution ──
    backoff_base_seconds: float = 1.0           # retry delay = base * 2^(attempt-1)
    http_timeout_seconds: float = 30.0

    # ── LLM (litellm) ──
    llm_max_tokens: int = 1000
    llm_temperature: float = 0.7
    ollama_base_url: str = "http://localhost:11434"

    model_config = {"env_prefix": "AGENTFLOW_", "env_file": ".env", "extra": "ignore"}


config = AgentflowConfig()
