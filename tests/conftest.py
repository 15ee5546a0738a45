"""Test fixtures: stub providers, isolated environment, temp secret store.

All tests should use these fixtures for consistency. Nothing here reads the
real process environment, so developer API keys never leak into tests.
"""

import os
import time

# litellm fetches its model cost map over the network at import time; offline,
# that failure path deadlocks inside its logging filter. Use the bundled copy.
os.environ.setdefault("LITELLM_LOCAL_MODEL_COST_MAP", "True")

import pytest
from cryptography.fernet import Fernet

from agentflow.core.engine import ExecutionEngine
from agentflow.core.renderer import TemplateRenderer
from agentflow.providers.registry import ProviderRegistry
from agentflow.secrets.encryption import SecretEncryption
from agentflow.secrets.resolver import SecretsResolver
from agentflow.secrets.store import LocalSecretStore
from agentflow.transport.http import HTTPTransport
from agentflow.types import ExecutionContext

# Stable Fernet key for the entire test session (ephemeral — regenerated each run)
_TEST_FERNET_KEY: str = Fernet.generate_key().decode()


class StubProvider:
    """Provider capability that replays scripted outcomes and records every call.

    Each entry in *outcomes* is returned, or raised if it is an exception.
    The last entry repeats once the script runs out.
    """

    def __init__(self, outcomes=None):
        self.outcomes = list(outcomes if outcomes is not None else ["stub-result"])
        self.calls: list[dict] = []

    async def invoke(self, model, prompt, context):
        self.calls.append({
            "model": model,
            "prompt": prompt,
            "secrets": dict(context.secrets),
            "at": time.monotonic(),
        })
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def make_context(input=None, vars=None, state=None, secrets=None) -> ExecutionContext:
    return ExecutionContext(
        input=input or {}, vars=vars or {}, state=state or {}, secrets=secrets or {},
    )


@pytest.fixture
def environ():
    """Isolated environment mapping shared by the resolver and renderer."""
    return {}


@pytest.fixture
def encryption():
    """SecretEncryption backed by the session Fernet key."""
    return SecretEncryption(key=_TEST_FERNET_KEY)


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "secrets" / "store.json"


@pytest.fixture
def store(store_path, encryption):
    return LocalSecretStore(store_path, encryption)


@pytest.fixture
def resolver(store, environ):
    return SecretsResolver(store=store, environ=environ)


@pytest.fixture
def renderer(environ):
    return TemplateRenderer(environ=environ)


@pytest.fixture
def stub_provider():
    return StubProvider()


@pytest.fixture
def engine(stub_provider, resolver, renderer):
    """Engine wired to the stub provider with zero backoff."""
    return ExecutionEngine(
        providers=ProviderRegistry({"stub": stub_provider}),
        secrets_resolver=resolver,
        renderer=renderer,
        transport=HTTPTransport(timeout_seconds=5),
        backoff_base=0,
    )
