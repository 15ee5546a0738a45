"""Build validated AgentDefinition objects from already-parsed data.

Accepts the parsed-definition shape as a mapping, or reads it from a YAML
(``.yaml``/``.yml``) or JSON file. The raw agent DSL is parsed elsewhere.
"""

import json
from pathlib import Path
from typing import Any, Union

import yaml
from pydantic import ValidationError

from agentflow.exceptions import ConfigurationError
from agentflow.types import AgentDefinition


def load_agent(data: Any) -> AgentDefinition:
    """Validate *data* into an :class:`AgentDefinition`.

    Raises:
        ConfigurationError: with one entry per violation in ``details["violations"]``
            (missing step fields, unknown step kinds, negative retries, ...).
    """
    if isinstance(data, AgentDefinition):
        return data
    if not isinstance(data, dict):
        raise ConfigurationError(f"Agent definition must be a mapping, got {type(data).__name__}")
    try:
        return AgentDefinition.model_validate(data)
    except ValidationError as exc:
        violations = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        ]
        agent_id = data.get("id", "<unknown>")
        raise ConfigurationError(
            f"Invalid agent definition '{agent_id}': {'; '.join(violations)}",
            details={"violations": violations},
        ) from exc


def load_agent_file(path: Union[str, Path]) -> AgentDefinition:
    """Read a YAML or JSON file and validate it with :func:`load_agent`."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Agent definition not found: {p}")
    text = p.read_text(encoding="utf-8")
    try:
        if p.suffix.lower() == ".json":
            raw = json.loads(text)
        else:
            raw = yaml.safe_load(text)
    except (ValueError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Could not parse agent definition {p}: {exc}") from exc
    return load_agent(raw or {})
