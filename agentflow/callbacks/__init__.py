from agentflow.callbacks.base import EVENTS, BaseCallback, ExecutionCallback
from agentflow.callbacks.logging import LoggingCallback

__all__ = ["EVENTS", "BaseCallback", "ExecutionCallback", "LoggingCallback"]
