"""Base callback protocol for agentflow run lifecycle hooks.

The engine accepts any callable ``cb(event: str, data: dict)`` (sync or
async). :class:`BaseCallback` turns that single entry point into named,
overridable hooks:

    class MyCallback(BaseCallback):
        async def on_step_complete(self, data):
            print(f"step {data['step_id']} done after {data['attempts']} attempt(s)")

    engine = ExecutionEngine(..., callbacks=[MyCallback()])

Events and their payload keys:

    run_start      agent_id, version, steps
    step_start     agent_id, step_id, kind, number
    step_skipped   agent_id, step_id, kind
    step_retry     agent_id, step_id, kind, attempt, delay, error
    step_complete  agent_id, step_id, kind, number, attempts, saved_as
    run_complete   agent_id, steps_executed, steps_skipped, duration_ms
    error          agent_id, step_id, kind, attempts, error
"""

from typing import Any, Protocol, runtime_checkable

EVENTS: tuple[str, ...] = (
    "run_start",
    "step_start",
    "step_skipped",
    "step_retry",
    "step_complete",
    "run_complete",
    "error",
)


@runtime_checkable
class ExecutionCallback(Protocol):
    """Anything the engine can notify."""

    def __call__(self, event: str, data: dict[str, Any]) -> Any:
        ...


class BaseCallback:
    """Concrete base with no-op implementations of all hooks.

    Subclass this and override only the hooks you need.
    """

    async def __call__(self, event: str, data: dict[str, Any]) -> None:
        if event not in EVENTS:
            return
        await getattr(self, f"on_{event}")(data)

    async def on_run_start(self, data: dict[str, Any]) -> None:
        pass

    async def on_step_start(self, data: dict[str, Any]) -> None:
        pass

    async def on_step_skipped(self, data: dict[str, Any]) -> None:
        pass

    async def on_step_retry(self, data: dict[str, Any]) -> None:
        pass

    async def on_step_complete(self, data: dict[str, Any]) -> None:
        pass

    async def on_run_complete(self, data: dict[str, Any]) -> None:
        pass

    async def on_error(self, data: dict[str, Any]) -> None:
        pass
