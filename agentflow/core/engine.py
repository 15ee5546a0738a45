"""Execution engine. Runs one AgentDefinition against one input.

Per run:   Init → VariableResolution → StepLoop → OutputResolution → Done
Per step:  CheckWhen → (Skipped | Attempt × (retries + 1) → Saved | Failed)

Steps run strictly in declared order; step N+1 starts only after step N has
settled, because it may read ``state`` written by step N. The engine holds no
per-run attributes, so one instance can serve concurrent runs: each run gets
its own :class:`ExecutionContext`.

Failure policy:
  * ConfigurationError (missing field, unknown provider, unknown kind) is
    raised immediately and never retried.
  * Any other step failure is retried after ``backoff_base * 2^(attempt-1)``
    seconds. Once attempts are exhausted a StepExecutionError aborts the
    whole run; there is no partial output.
"""

import asyncio
import inspect
import logging
import re
import time
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional, Union

from agentflow.config import config
from agentflow.core.renderer import TemplateRenderer, get_nested_value
from agentflow.exceptions import (
    AgentflowError, ConfigurationError, StepExecutionError, TransientError,
)
from agentflow.loader import load_agent
from agentflow.providers.llm import default_registry
from agentflow.providers.registry import ProviderRegistry
from agentflow.secrets.resolver import SecretsResolver
from agentflow.transport.http import HTTPTransport
from agentflow.types import (
    AgentDefinition, EnvVariable, ExecutionContext, ExecutionResult,
    FunctionStep, HTTPStep, InputVariable, LLMStep, StepRecord, StepStatus,
)

logger = logging.getLogger(__name__)

# Rendered `when` strings treated as false, compared case-insensitively.
_FALSY_STRINGS: frozenset[str] = frozenset({"", "false", "0", "no", "none", "null", "undefined"})
_LONE_PLACEHOLDER_RE = re.compile(r"^\{([^{}]+)\}$")


def is_truthy(value: Any) -> bool:
    """Coerce a ``when`` value to a boolean.

    Strings are false when empty or one of ``false/0/no/none/null/undefined``.
    Everything else uses Python truthiness.
    """
    if isinstance(value, str):
        return value.strip().lower() not in _FALSY_STRINGS
    return bool(value)


class ExecutionEngine:
    """Single entry point for running agent definitions.

    Constructor dependencies (all injectable, all defaulted):
        - providers: ProviderRegistry — ``step.provider`` → capability
        - secrets_resolver: SecretsResolver — run once per execution
        - renderer: TemplateRenderer
        - transport: HTTPTransport — used by ``http`` steps
        - callbacks: list of ``cb(event, data)`` callables (sync or async)
        - backoff_base: seconds for the first retry delay (doubles per attempt)
    """

    def __init__(
        self,
        providers: Optional[ProviderRegistry] = None,
        secrets_resolver: Optional[SecretsResolver] = None,
        renderer: Optional[TemplateRenderer] = None,
        transport: Optional[HTTPTransport] = None,
        callbacks: Optional[list[Callable[..., Any]]] = None,
        backoff_base: Optional[float] = None,
    ):
        self.providers = providers if providers is not None else default_registry()
        self.secrets = secrets_resolver if secrets_resolver is not None else SecretsResolver.from_config()
        self.renderer = renderer or TemplateRenderer()
        self.transport = transport or HTTPTransport()
        self.callbacks = list(callbacks or [])
        self.backoff_base = config.backoff_base_seconds if backoff_base is None else backoff_base

    # ── Public API ────────────────────────────────────────────────────────────

    async def execute(
        self,
        agent: Union[AgentDefinition, dict],
        input: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Run *agent* against *input* and return the rendered output."""
        result = await self.run(agent, input)
        return result.output

    async def run(
        self,
        agent: Union[AgentDefinition, dict],
        input: Optional[Mapping[str, Any]] = None,
        require_secrets: bool = False,
    ) -> ExecutionResult:
        """Run *agent* and return the output together with a per-step summary.

        Args:
            agent: A validated definition, or a mapping passed through
                :func:`agentflow.loader.load_agent`.
            input: Run input; available as ``input.*`` and top-level names.
            require_secrets: Abort with ConfigurationError before any step
                runs if a declared secret did not resolve.

        Raises:
            ConfigurationError: invalid definition or step configuration.
            StepExecutionError: a step failed on every attempt.
        """
        if not isinstance(agent, AgentDefinition):
            agent = load_agent(agent)

        started = time.monotonic()
        result = ExecutionResult(agent_id=agent.id, version=agent.version)
        logger.info(f"[Engine] run() agent={agent.id} v{agent.version} steps={len(agent.steps)}")
        await self._fire_callbacks("run_start", {
            "agent_id": agent.id, "version": agent.version, "steps": len(agent.steps),
        })

        # Init
        context = ExecutionContext(input=dict(input or {}))
        context.secrets = await self.secrets.resolve_secrets(agent.secrets)
        if require_secrets:
            validation = self.secrets.validate_secrets(context.secrets)
            if not validation.valid:
                raise ConfigurationError(
                    f"Unresolved secrets: {', '.join(validation.missing)}",
                    details={"missing": validation.missing},
                )

        # VariableResolution
        self._resolve_variables(agent, context)
        result.variables_resolved = len(context.vars)
        logger.debug(f"[Engine] Variables resolved: {len(context.vars)}")

        # StepLoop
        step_number = 0
        for step in agent.steps:
            if step.when and not self._when_passes(step.when, context):
                logger.debug(f"[Engine] Skipping step '{step.id}' due to when condition")
                result.steps.append(StepRecord(step_id=step.id, kind=step.kind, status=StepStatus.SKIPPED))
                await self._fire_callbacks("step_skipped", {
                    "agent_id": agent.id, "step_id": step.id, "kind": step.kind,
                })
                continue

            step_number += 1
            logger.info(f"[Engine] Step {step_number}: {step.id} ({step.kind}) running")
            await self._fire_callbacks("step_start", {
                "agent_id": agent.id, "step_id": step.id, "kind": step.kind, "number": step_number,
            })
            try:
                value, attempts = await self._execute_with_retry(agent, step, context)
            except AgentflowError as exc:
                attempts = getattr(exc, "attempts", None) or exc.details.get("attempts", 1)
                result.steps.append(StepRecord(
                    step_id=step.id, kind=step.kind, number=step_number,
                    status=StepStatus.FAILED, attempts=attempts, error=str(exc),
                ))
                exc.details.setdefault("steps", [s.model_dump(mode="json") for s in result.steps])
                logger.error(f"[Engine] Step {step_number}: '{step.id}' failed: {exc}")
                await self._fire_callbacks("error", {
                    "agent_id": agent.id, "step_id": step.id, "kind": step.kind,
                    "attempts": attempts, "error": str(exc),
                })
                raise

            saved_as = None
            if step.save and value is not None:
                context.save(step.save, value)
                saved_as = step.save
                logger.debug(f"[Engine] Saved result to '{step.save}': {str(value)[:100]}")

            result.steps.append(StepRecord(
                step_id=step.id, kind=step.kind, number=step_number,
                status=StepStatus.SUCCEEDED, attempts=attempts, saved_as=saved_as,
            ))
            await self._fire_callbacks("step_complete", {
                "agent_id": agent.id, "step_id": step.id, "kind": step.kind,
                "number": step_number, "attempts": attempts, "saved_as": saved_as,
            })

        # OutputResolution
        result.output = self.renderer.render_object(agent.output, context)
        result.completed_at = datetime.now(timezone.utc)

        duration_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            f"[Engine] Agent {agent.id} v{agent.version} complete: "
            f"executed={result.steps_executed} skipped={result.steps_skipped} "
            f"variables={result.variables_resolved} duration_ms={duration_ms}"
        )
        await self._fire_callbacks("run_complete", {
            "agent_id": agent.id,
            "steps_executed": result.steps_executed,
            "steps_skipped": result.steps_skipped,
            "duration_ms": duration_ms,
        })
        return result

    # ── Variable resolution ───────────────────────────────────────────────────

    def _resolve_variables(self, agent: AgentDefinition, context: ExecutionContext) -> None:
        """Populate ``context.vars`` once. Declarations are independent of each other."""
        for name, spec in agent.vars.items():
            if isinstance(spec, InputVariable):
                value = get_nested_value(context.input, spec.path)
            elif isinstance(spec, EnvVariable):
                value = self.renderer.environ.get(spec.path)
            else:
                value = spec.value
            context.vars[name] = value
            logger.debug(f"[Engine] Variable '{name}' resolved from {spec.type}")

    def _when_passes(self, when: str, context: ExecutionContext) -> bool:
        """Evaluate a ``when`` guard.

        A guard that is a single ``{name}`` is judged on the resolved value
        itself, so a missing name is false and a saved object is true.
        Anything else is rendered and judged as text.
        """
        lone = _LONE_PLACEHOLDER_RE.match(when.strip())
        if lone:
            value = self.renderer.resolve_variable(lone.group(1).strip(), context)
            return value is not None and is_truthy(value)
        return is_truthy(self.renderer.render(when, context))

    # ── Step execution ────────────────────────────────────────────────────────

    async def _execute_with_retry(
        self, agent: AgentDefinition, step: Any, context: ExecutionContext
    ) -> tuple[Any, int]:
        """Dispatch *step* up to ``retries + 1`` times. Returns (result, attempts)."""
        max_attempts = (step.retries or 0) + 1
        attempt = 0
        while True:
            attempt += 1
            try:
                return await self._dispatch(step, context), attempt
            except ConfigurationError as exc:
                exc.step_id = exc.step_id or step.id
                exc.step_kind = exc.step_kind or getattr(step, "kind", "")
                exc.details.setdefault("attempts", attempt)
                raise
            except Exception as exc:
                if attempt >= max_attempts:
                    raise StepExecutionError(
                        f"Step '{step.id}' ({step.kind}) failed after {attempt} attempt(s): {exc}",
                        step_id=step.id,
                        step_kind=step.kind,
                        attempts=attempt,
                        details={"error_type": type(exc).__name__},
                    ) from exc
                delay = self.backoff_base * 2 ** (attempt - 1)
                logger.warning(
                    f"[Engine] Step '{step.id}' attempt {attempt} failed, retrying in {delay}s: {exc}"
                )
                await self._fire_callbacks("step_retry", {
                    "agent_id": agent.id, "step_id": step.id, "kind": step.kind,
                    "attempt": attempt, "delay": delay, "error": str(exc),
                })
                await asyncio.sleep(delay)

    async def _dispatch(self, step: Any, context: ExecutionContext) -> Any:
        if isinstance(step, LLMStep):
            return await self._execute_llm_step(step, context)
        if isinstance(step, HTTPStep):
            return await self._execute_http_step(step, context)
        if isinstance(step, FunctionStep):
            return await self._execute_function_step(step, context)
        kind = getattr(step, "kind", None)
        raise ConfigurationError(
            f"Unknown step kind: {kind}", step_id=getattr(step, "id", ""), step_kind=str(kind or ""),
        )

    async def _execute_llm_step(self, step: LLMStep, context: ExecutionContext) -> Any:
        for field in ("provider", "model", "prompt"):
            if not getattr(step, field, None):
                raise ConfigurationError(
                    f"LLM step '{step.id}' missing {field}", step_id=step.id, step_kind=step.kind,
                )

        provider = self.providers.get(step.provider)
        prompt = self.renderer.render(step.prompt, context)
        logger.debug(f"[Engine] LLM step '{step.id}' via {step.provider}/{step.model}: {prompt[:100]}")
        return await provider.invoke(step.model, prompt, context)

    async def _execute_http_step(self, step: HTTPStep, context: ExecutionContext) -> Any:
        if not step.url:
            raise ConfigurationError(
                f"HTTP step '{step.id}' missing url", step_id=step.id, step_kind=step.kind,
            )

        url = self.renderer.render(step.url, context)
        headers = self.renderer.render_object(step.headers or {}, context)
        body = self.renderer.render_object(step.body, context) if step.body is not None else None
        method = (step.action or "GET").upper()

        response = await self.transport.request(method, url, headers=headers, body=body)
        return response.body

    async def _execute_function_step(self, step: FunctionStep, context: ExecutionContext) -> Any:
        logger.debug(f"[Engine] Executing function step: {step.id}")
        raise TransientError(
            "Function steps are not yet implemented", details={"step_id": step.id},
        )

    # ── Callbacks ─────────────────────────────────────────────────────────────

    async def _fire_callbacks(self, event: str, data: dict) -> None:
        """Invoke all registered callbacks for a lifecycle event."""
        for cb in self.callbacks:
            try:
                outcome = cb(event, data)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as cb_exc:
                logger.warning(f"[Engine] Callback error on '{event}': {cb_exc}")
