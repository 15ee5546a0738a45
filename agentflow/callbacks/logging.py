"""Structured JSON logging callback for agentflow lifecycle events."""

import json
import logging
from datetime import datetime, timezone
from typing import Any

from agentflow.callbacks.base import BaseCallback
from agentflow.secrets.masking import mask_sensitive_data

logger = logging.getLogger("agentflow.audit")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _clip(value: Any) -> Any:
    if isinstance(value, (int, float, bool)) or value is None:
        return value
    return mask_sensitive_data(str(value)[:200])


class LoggingCallback(BaseCallback):
    """Emits one self-contained JSON log line per lifecycle event.

    Each line carries ``event`` and ``ts`` (ISO-8601 UTC) plus the event
    payload, with string values clipped to 200 characters and known token
    shapes masked.

    Log level: INFO for normal events, WARNING for retries, ERROR for errors.
    Logger name: agentflow.audit (configure in your logging setup)
    """

    def _emit(self, level: int, event: str, data: dict[str, Any]) -> None:
        record = {"event": event, "ts": _now(), **{k: _clip(v) for k, v in data.items()}}
        logger.log(level, json.dumps(record))

    async def on_run_start(self, data: dict[str, Any]) -> None:
        self._emit(logging.INFO, "run_start", data)

    async def on_step_start(self, data: dict[str, Any]) -> None:
        self._emit(logging.INFO, "step_start", data)

    async def on_step_skipped(self, data: dict[str, Any]) -> None:
        self._emit(logging.INFO, "step_skipped", data)

    async def on_step_retry(self, data: dict[str, Any]) -> None:
        self._emit(logging.WARNING, "step_retry", data)

    async def on_step_complete(self, data: dict[str, Any]) -> None:
        self._emit(logging.INFO, "step_complete", data)

    async def on_run_complete(self, data: dict[str, Any]) -> None:
        self._emit(logging.INFO, "run_complete", data)

    async def on_error(self, data: dict[str, Any]) -> None:
        self._emit(logging.ERROR, "error", data)
