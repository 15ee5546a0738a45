"""Agent definition loading from mappings and YAML/JSON files."""

import json

import pytest
from pydantic import ValidationError

from agentflow.exceptions import ConfigurationError
from agentflow.loader import load_agent, load_agent_file
from agentflow.types import HTTPStep, InputVariable, LLMStep, LiteralVariable, SecretType

_YAML = """
id: greeter
version: 2
variables:
  name:
    type: input
    path: user.name
  tone:
    type: literal
    value: warm
secrets:
  openai:
    type: env
    value: OPENAI_API_KEY
steps:
  - id: fetch
    kind: http
    url: https://api.example/{name}
    save: profile
  - id: greet
    kind: llm
    provider: openai
    model: gpt-4o-mini
    prompt: "Greet {profile} in a {tone} way"
    retries: 2
    when: "{profile}"
    save: greeting
output_template:
  greeting: "{greeting}"
"""


def test_load_yaml_file(tmp_path):
    path = tmp_path / "greeter.yaml"
    path.write_text(_YAML)
    agent = load_agent_file(path)

    assert agent.id == "greeter"
    assert agent.version == "2"
    assert isinstance(agent.vars["name"], InputVariable)
    assert isinstance(agent.vars["tone"], LiteralVariable)
    assert agent.secrets["openai"].alias == "openai"
    assert agent.secrets["openai"].type == SecretType.ENV
    assert isinstance(agent.steps[0], HTTPStep)
    assert agent.steps[0].action == "GET"
    assert isinstance(agent.steps[1], LLMStep)
    assert agent.steps[1].retries == 2
    assert agent.output == {"greeting": "{greeting}"}


def test_load_json_file(tmp_path):
    path = tmp_path / "agent.json"
    path.write_text(json.dumps({"id": "j", "steps": [{"id": "s", "kind": "function"}], "output": "x"}))
    agent = load_agent_file(path)
    assert agent.id == "j"
    assert agent.version == "1.0.0"
    assert agent.steps[0].kind == "function"


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_agent_file(tmp_path / "nope.yaml")


def test_unparseable_file(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json")
    with pytest.raises(ConfigurationError, match="Could not parse"):
        load_agent_file(path)


def test_defaults_for_minimal_definition():
    agent = load_agent({"id": "minimal"})
    assert agent.vars == {}
    assert agent.secrets == {}
    assert agent.steps == []
    assert agent.output is None


def test_violations_are_collected():
    with pytest.raises(ConfigurationError) as exc_info:
        load_agent({
            "id": "bad",
            "steps": [
                {"id": "a", "kind": "llm", "provider": "openai", "model": "m"},
                {"id": "b", "kind": "http", "url": "https://x", "retries": -1},
            ],
        })
    violations = exc_info.value.details["violations"]
    assert len(violations) == 2
    assert any("prompt" in v for v in violations)
    assert any("retries" in v for v in violations)
    assert "'bad'" in str(exc_info.value)


def test_unknown_secret_type_rejected():
    with pytest.raises(ConfigurationError):
        load_agent({"id": "x", "secrets": {"k": {"type": "keychain", "value": "v"}}})


def test_non_mapping_rejected():
    with pytest.raises(ConfigurationError, match="must be a mapping"):
        load_agent(["not", "a", "mapping"])


def test_definition_is_immutable():
    agent = load_agent({"id": "frozen"})
    with pytest.raises(ValidationError):
        agent.id = "changed"
