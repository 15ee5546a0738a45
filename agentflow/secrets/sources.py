"""Pluggable lookup interface for external secret managers (aws, gcp, vault)."""

from typing import Optional, Protocol, runtime_checkable

from agentflow.exceptions import SecretError


@runtime_checkable
class SecretSource(Protocol):
    """One external secret manager.

    ``lookup`` returns the secret for *key*, or ``None`` when it does not
    exist. Raising is allowed; the resolver logs the failure and treats the
    secret as not found.
    """

    async def lookup(self, key: str) -> Optional[str]:
        ...


class UnavailableSource:
    """Placeholder for secret managers that have no integration configured."""

    def __init__(self, name: str) -> None:
        self.name = name

    async def lookup(self, key: str) -> Optional[str]:
        raise SecretError(f"{self.name} integration not yet implemented", alias=key)
