"""agentflow — run declarative agent pipelines.

Usage:
    from agentflow import ExecutionEngine, load_agent

    engine = ExecutionEngine()
    output = await engine.execute(load_agent(definition), {"user": {"name": "Ada"}})
"""

from agentflow.core.engine import ExecutionEngine
from agentflow.core.renderer import TemplateRenderer
from agentflow.exceptions import (
    AgentflowError, ConfigurationError, DecryptionError, SecretError,
    SecretStoreError, StepExecutionError, TransientError,
)
from agentflow.loader import load_agent, load_agent_file
from agentflow.providers import LiteLLMProvider, ProviderCapability, ProviderRegistry
from agentflow.secrets import LocalSecretStore, SecretEncryption, SecretsResolver
from agentflow.types import (
    AgentDefinition, ExecutionContext, ExecutionResult, FunctionStep, HTTPStep,
    LLMStep, SecretSpec, SecretType, StepKind, StepRecord, StepStatus,
)

__version__ = "0.1.0"

__all__ = [
    "ExecutionEngine", "TemplateRenderer", "load_agent", "load_agent_file",
    "ProviderCapability", "ProviderRegistry", "LiteLLMProvider",
    "SecretsResolver", "LocalSecretStore", "SecretEncryption",
    "AgentDefinition", "ExecutionContext", "ExecutionResult", "FunctionStep",
    "HTTPStep", "LLMStep", "SecretSpec", "SecretType", "StepKind", "StepRecord",
    "StepStatus",
    "AgentflowError", "ConfigurationError", "TransientError", "StepExecutionError",
    "SecretError", "SecretStoreError", "DecryptionError",
    "__version__",
]
