"""All shared types, enums, and type aliases. Everything imports from here."""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Enums ──────────────────────────────────────────────────────────────

class StepKind(str, Enum):
    LLM = "llm"
    HTTP = "http"
    FUNCTION = "function"

class SecretType(str, Enum):
    ENV = "env"
    LOCAL = "local"     # encrypted local store
    AWS = "aws"
    GCP = "gcp"
    VAULT = "vault"

class StepStatus(str, Enum):
    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"     # `when` rendered falsy
    FAILED = "failed"


# ── Variable declarations ──────────────────────────────────────────────

class InputVariable(BaseModel):
    """Nested-path lookup into the run input, e.g. ``user.name``."""
    model_config = ConfigDict(frozen=True)
    type: Literal["input"] = "input"
    path: str

class EnvVariable(BaseModel):
    """Direct process-environment lookup (no nesting)."""
    model_config = ConfigDict(frozen=True)
    type: Literal["env"] = "env"
    path: str

class LiteralVariable(BaseModel):
    """A declared constant."""
    model_config = ConfigDict(frozen=True)
    type: Literal["literal"] = "literal"
    value: Any = None

VariableSpec = Annotated[
    Union[InputVariable, EnvVariable, LiteralVariable],
    Field(discriminator="type"),
]


# ── Secret declarations ────────────────────────────────────────────────

class SecretSpec(BaseModel):
    """A declared secret: agent-local alias plus a source-specific key."""
    model_config = ConfigDict(frozen=True)
    alias: str
    type: SecretType
    value: str                          # env var name, store key, or remote secret name


# ── Steps ──────────────────────────────────────────────────────────────

class _StepBase(BaseModel):
    model_config = ConfigDict(frozen=True)
    id: str
    when: Optional[str] = None          # template; falsy render skips the step
    retries: int = Field(default=0, ge=0)
    save: Optional[str] = None          # state key for the step result

class LLMStep(_StepBase):
    kind: Literal["llm"] = "llm"
    provider: str = Field(min_length=1)
    model: str = Field(min_length=1)
    prompt: str = Field(min_length=1)

class HTTPStep(_StepBase):
    kind: Literal["http"] = "http"
    url: str = Field(min_length=1)
    action: str = "GET"                 # HTTP method
    headers: dict[str, Any] = Field(default_factory=dict)
    body: Any = None

class FunctionStep(_StepBase):
    kind: Literal["function"] = "function"
    action: Optional[str] = None

StepSpec = Annotated[
    Union[LLMStep, HTTPStep, FunctionStep],
    Field(discriminator="kind"),
]


class AgentDefinition(BaseModel):
    """Parsed, immutable agent pipeline. One ``execute`` call runs one of these."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    version: str = "1.0.0"
    vars: dict[str, VariableSpec] = Field(
        default_factory=dict, validation_alias=AliasChoices("vars", "variables"),
    )
    secrets: dict[str, SecretSpec] = Field(default_factory=dict)
    steps: list[StepSpec] = Field(default_factory=list)
    output: Any = Field(default=None, validation_alias=AliasChoices("output", "output_template"))

    @field_validator("version", mode="before")
    @classmethod
    def _coerce_version(cls, value: Any) -> Any:
        return str(value) if isinstance(value, (int, float)) else value

    @field_validator("secrets", mode="before")
    @classmethod
    def _default_aliases(cls, value: Any) -> Any:
        # Declared as {alias: {type, value}}; the mapping key is the alias.
        if not isinstance(value, dict):
            return value
        return {
            alias: {"alias": alias, **spec} if isinstance(spec, dict) else spec
            for alias, spec in value.items()
        }


# ── Runtime ────────────────────────────────────────────────────────────

class ExecutionContext(BaseModel):
    """Per-run mutable record. Never shared between runs."""
    input: dict[str, Any] = Field(default_factory=dict)
    vars: dict[str, Any] = Field(default_factory=dict)      # write-once, variable resolution only
    state: dict[str, Any] = Field(default_factory=dict)     # last write wins per save name
    secrets: dict[str, Optional[str]] = Field(default_factory=dict)

    def save(self, name: str, value: Any) -> None:
        """Store a step result, shadowing any earlier result under *name*."""
        self.state[name] = value


class StepRecord(BaseModel):
    """Outcome of one step in a run."""
    step_id: str
    kind: str
    number: Optional[int] = None        # 1-based; None for skipped steps
    status: StepStatus
    attempts: int = 0
    saved_as: Optional[str] = None
    error: Optional[str] = None

class ExecutionResult(BaseModel):
    """Summary of a completed run."""
    agent_id: str
    version: str
    output: Any = None
    steps: list[StepRecord] = Field(default_factory=list)
    variables_resolved: int = 0
    started_at: datetime = Field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None

    @computed_field
    @property
    def steps_executed(self) -> int:
        return sum(1 for s in self.steps if s.status == StepStatus.SUCCEEDED)

    @computed_field
    @property
    def steps_skipped(self) -> int:
        return sum(1 for s in self.steps if s.status == StepStatus.SKIPPED)

class SecretValidation(BaseModel):
    valid: bool
    missing: list[str] = Field(default_factory=list)
