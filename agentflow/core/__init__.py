from agentflow.core.engine import ExecutionEngine, is_truthy
from agentflow.core.renderer import TemplateRenderer, get_nested_value

__all__ = ["ExecutionEngine", "TemplateRenderer", "get_nested_value", "is_truthy"]
