"""agentflow quickstart: run a YAML agent end-to-end with no API keys or network.

An in-process ``echo`` provider stands in for a real LLM, and the secrets
resolver runs without a local store so nothing is written to disk.

Run:
    python examples/quickstart/main.py
"""

import asyncio
import json
from pathlib import Path

from agentflow import ExecutionEngine, ProviderRegistry, SecretsResolver, load_agent_file
from agentflow.callbacks import LoggingCallback
from agentflow.log import configure_logging


class EchoProvider:
    """Returns the rendered prompt, upper-cased."""

    async def invoke(self, model, prompt, context):
        return f"[{model}] {prompt.upper()}"


async def main() -> None:
    configure_logging("INFO")

    agent = load_agent_file(Path(__file__).with_name("greeter.yaml"))
    engine = ExecutionEngine(
        providers=ProviderRegistry({"echo": EchoProvider()}),
        secrets_resolver=SecretsResolver(store=None),
        callbacks=[LoggingCallback()],
    )

    for user_input in ({"user": {"name": "Ada"}}, {"user": {"name": "Grace"}, "formal": "yes"}):
        result = await engine.run(agent, user_input)
        print(json.dumps(result.output, indent=2))
        print(f"executed={result.steps_executed} skipped={result.steps_skipped}\n")


if __name__ == "__main__":
    asyncio.run(main())
