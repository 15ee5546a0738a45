"""SecretsResolver — turn declared secrets into concrete values.

Priority per alias (first non-empty value wins):

1. The declared source: ``env`` reads the process environment, ``local``
   reads the decrypted local store, ``aws``/``gcp``/``vault`` ask the
   registered :class:`SecretSource`.
2. Conventional environment names derived from the alias:
   ``{ALIAS}_API_KEY``, ``{ALIAS}_KEY``, ``{ALIAS}_TOKEN``, ``{ALIAS}_SECRET``.

Values found anywhere other than the local store are written through to it
when the alias has no entry yet, so later runs skip the external lookup.
A secret nobody can resolve maps to ``None``; that is reported by
:meth:`SecretsResolver.validate_secrets`, never raised.
"""

import asyncio
import logging
import os
from typing import Mapping, Optional

from agentflow.config import AgentflowConfig, config as default_config
from agentflow.secrets.encryption import SecretEncryption
from agentflow.secrets.masking import mask_secret
from agentflow.secrets.sources import SecretSource, UnavailableSource
from agentflow.secrets.store import LocalSecretStore
from agentflow.types import SecretSpec, SecretType, SecretValidation

logger = logging.getLogger(__name__)

CONVENTIONAL_SUFFIXES: tuple[str, ...] = ("_API_KEY", "_KEY", "_TOKEN", "_SECRET")

_LOCAL = "local"


def conventional_env_names(alias: str) -> list[str]:
    """Environment variable names probed for *alias*, in priority order."""
    upper = alias.upper()
    return [f"{upper}{suffix}" for suffix in CONVENTIONAL_SUFFIXES]


class SecretsResolver:
    """Resolves secret declarations for one or more runs.

    The resolver keeps no per-run state, so a single instance can serve
    concurrent runs; the local store serializes its own writes.

    Args:
        store: Local encrypted cache. ``None`` disables both local lookups
            and write-through caching.
        sources: External secret managers keyed by :class:`SecretType`.
            Types without an entry get an :class:`UnavailableSource`.
        environ: Environment mapping. Defaults to ``os.environ`` read at
            resolution time.
    """

    def __init__(
        self,
        store: Optional[LocalSecretStore] = None,
        sources: Optional[dict[SecretType, SecretSource]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.store = store
        self.sources: dict[SecretType, SecretSource] = {
            SecretType.AWS: UnavailableSource("AWS Secrets Manager"),
            SecretType.GCP: UnavailableSource("GCP Secret Manager"),
            SecretType.VAULT: UnavailableSource("Vault"),
        }
        self.sources.update(sources or {})
        self._environ = environ

    @classmethod
    def from_config(cls, cfg: Optional[AgentflowConfig] = None, **kwargs) -> "SecretsResolver":
        """Build a resolver whose local store lives at ``cfg.secrets_path``."""
        cfg = cfg or default_config
        store = LocalSecretStore(cfg.secrets_path, SecretEncryption(cfg.secrets_key))
        return cls(store=store, **kwargs)

    @property
    def environ(self) -> Mapping[str, str]:
        return os.environ if self._environ is None else self._environ

    def register_source(self, secret_type: SecretType, source: SecretSource) -> None:
        self.sources[SecretType(secret_type)] = source

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def resolve_secrets(self, declarations: Mapping[str, SecretSpec]) -> dict[str, Optional[str]]:
        """Resolve every declared alias. Every alias appears in the result."""
        logger.debug("[Secrets] Resolving %d secret(s)", len(declarations))
        local: dict[str, str] = {}
        if self.store is not None and declarations:
            local = await asyncio.to_thread(self.store.load)

        resolved: dict[str, Optional[str]] = {}
        for alias, spec in declarations.items():
            try:
                resolved[alias] = await self._resolve_one(alias, spec, local)
            except Exception as exc:
                logger.error("[Secrets] Failed to resolve secret '%s': %s", alias, exc)
                resolved[alias] = None
        return resolved

    async def _resolve_one(self, alias: str, spec: SecretSpec, local: dict[str, str]) -> Optional[str]:
        value, origin = await self._from_declared(alias, spec, local)
        if not value:
            value, origin = self._from_conventional(alias)

        if not value:
            logger.warning("[Secrets] Secret '%s' could not be resolved from any source", alias)
            return None

        logger.debug("[Secrets] Resolved secret '%s' from %s: %s", alias, origin, mask_secret(value))
        if origin != _LOCAL and self.store is not None and alias not in local:
            await asyncio.to_thread(self.store.put, alias, value, False)
        return value

    async def _from_declared(
        self, alias: str, spec: SecretSpec, local: dict[str, str]
    ) -> tuple[Optional[str], str]:
        if spec.type == SecretType.ENV:
            value = self.environ.get(spec.value)
            if not value:
                logger.warning(
                    "[Secrets] Environment variable '%s' for secret '%s' is not set", spec.value, alias,
                )
            return value, f"env:{spec.value}"

        if spec.type == SecretType.LOCAL:
            if self.store is None:
                logger.warning("[Secrets] Secret '%s' declares a local source but no store is configured", alias)
            return local.get(spec.value), _LOCAL

        source = self.sources.get(spec.type)
        if source is None:
            logger.warning("[Secrets] Unknown secret type '%s' for secret '%s'", spec.type.value, alias)
            return None, spec.type.value
        try:
            value = await source.lookup(spec.value)
        except Exception as exc:
            logger.warning("[Secrets] %s lookup for secret '%s' failed: %s", spec.type.value, alias, exc)
            return None, spec.type.value
        return value, f"{spec.type.value}:{spec.value}"

    def _from_conventional(self, alias: str) -> tuple[Optional[str], str]:
        for name in conventional_env_names(alias):
            value = self.environ.get(name)
            if value:
                return value, f"env:{name}"
        return None, ""

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @staticmethod
    def validate_secrets(secrets: Mapping[str, Optional[str]]) -> SecretValidation:
        """Report which aliases resolved to nothing so a caller can abort early."""
        missing = [alias for alias, value in secrets.items() if not value]
        return SecretValidation(valid=not missing, missing=missing)
