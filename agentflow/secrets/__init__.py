"""Secrets — multi-source resolution backed by a per-entry encrypted local store."""

from agentflow.secrets.encryption import SecretEncryption
from agentflow.secrets.resolver import SecretsResolver, conventional_env_names
from agentflow.secrets.sources import SecretSource, UnavailableSource
from agentflow.secrets.store import LocalSecretStore

__all__ = [
    "LocalSecretStore",
    "SecretEncryption",
    "SecretSource",
    "SecretsResolver",
    "UnavailableSource",
    "conventional_env_names",
]
