"""Typed exception hierarchy. Every error agentflow can raise."""


class AgentflowError(Exception):
    """Base exception for all agentflow errors."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.details = details or {}


# ── Execution ───────────────────────────────────────────────────────────────


class ConfigurationError(AgentflowError):
    """Agent definition or step is misconfigured. Never retried."""
    def __init__(self, message: str, step_id: str = "", step_kind: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.step_id = step_id
        self.step_kind = step_kind


class TransientError(AgentflowError):
    """Provider, network, or non-success HTTP failure. Retried up to the step budget."""
    pass


class StepExecutionError(AgentflowError):
    """A step exhausted its retry budget; the run is aborted."""
    def __init__(self, message: str, step_id: str = "", step_kind: str = "", attempts: int = 0, **kwargs):
        super().__init__(message, **kwargs)
        self.step_id = step_id
        self.step_kind = step_kind
        self.attempts = attempts


# ── Secrets ─────────────────────────────────────────────────────────────────


class SecretError(AgentflowError):
    """Base exception for secret resolution and storage errors."""
    def __init__(self, message: str, alias: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.alias = alias


class SecretStoreError(SecretError):
    """Local secret store misconfigured (e.g. invalid encryption key)."""
    pass


class DecryptionError(SecretError):
    """A single local-store entry could not be decrypted."""
    pass
