"""Template rendering: ``{name}`` placeholder substitution over an ExecutionContext.

Variable resolution order (first defined value wins):

  1. ``state[name]``      — latest step result saved under that name
  2. ``vars[name]``       — declared run variables
  3. ``input.<path>``     — dot-separated nested lookup into the run input
  4. ``input[name]``      — direct top-level input key
  5. ``env.<NAME>``       — process environment
  6. not found            — the placeholder is left verbatim

Step outputs therefore shadow declared variables and raw input without any
renaming in the agent definition.
"""

import json
import logging
import os
import re
from typing import Any, Mapping, Optional

from agentflow.types import ExecutionContext

logger = logging.getLogger(__name__)

_PLACEHOLDER_RE = re.compile(r"\{([^}]+)\}")

INPUT_PREFIX = "input."
ENV_PREFIX = "env."


def get_nested_value(obj: Any, path: str) -> Any:
    """Walk a dot-separated *path* through nested mappings and sequences.

    Returns ``None`` as soon as any segment is missing.

    Examples::

        get_nested_value({"user": {"name": "Ada"}}, "user.name")   # "Ada"
        get_nested_value({"items": [{"id": 7}]}, "items.0.id")     # 7
    """
    if obj is None or not path:
        return None
    current = obj
    for part in path.split("."):
        if isinstance(current, Mapping):
            current = current.get(part)
        elif isinstance(current, (list, tuple)) and part.isdigit():
            index = int(part)
            current = current[index] if index < len(current) else None
        else:
            return None
        if current is None:
            return None
    return current


def _stringify(value: Any) -> str:
    # JSON spelling for structures and booleans.
    if isinstance(value, (dict, list, bool)):
        return json.dumps(value, default=str)
    return str(value)


class TemplateRenderer:
    """Renders strings and nested structures against an :class:`ExecutionContext`.

    Args:
        environ: Environment mapping used for ``env.*`` names. Defaults to
            ``os.environ`` read at render time.
    """

    def __init__(self, environ: Optional[Mapping[str, str]] = None) -> None:
        self._environ = environ

    @property
    def environ(self) -> Mapping[str, str]:
        return os.environ if self._environ is None else self._environ

    def render(self, template: Any, context: ExecutionContext) -> Any:
        """Substitute every resolvable ``{name}`` in *template*.

        Non-strings are returned unchanged. Placeholders that resolve to
        nothing are kept as the literal ``{name}`` text.
        """
        if not isinstance(template, str):
            return template
        if "{" not in template and "}" not in template:
            return template

        logger.debug("[Renderer] Rendering template: %.50s", template)

        def _substitute(match: re.Match) -> str:
            value = self.resolve_variable(match.group(1).strip(), context)
            return match.group(0) if value is None else _stringify(value)

        return _PLACEHOLDER_RE.sub(_substitute, template)

    def render_object(self, value: Any, context: ExecutionContext) -> Any:
        """Recursively render lists, dict keys and values, and strings."""
        if isinstance(value, str):
            return self.render(value, context)
        if isinstance(value, list):
            return [self.render_object(item, context) for item in value]
        if isinstance(value, dict):
            return {
                self.render(k, context): self.render_object(v, context)
                for k, v in value.items()
            }
        return value

    def resolve_variable(self, name: str, context: ExecutionContext) -> Any:
        """Look *name* up in the fixed resolution order. ``None`` means not found."""
        value = context.state.get(name)
        if value is not None:
            return value

        value = context.vars.get(name)
        if value is not None:
            return value

        if name.startswith(INPUT_PREFIX):
            return get_nested_value(context.input, name[len(INPUT_PREFIX):])

        value = context.input.get(name)
        if value is not None:
            return value

        if name.startswith(ENV_PREFIX):
            return self.environ.get(name[len(ENV_PREFIX):])

        logger.debug("[Renderer] Variable '%s' not found in context", name)
        return None
