"""Redaction helpers so secret values never reach the logs in clear."""

import re
from typing import Any

# Keys whose values are replaced before request params are logged.
_SENSITIVE_KEYS: tuple[str, ...] = (
    "password",
    "pass",
    "pwd",
    "secret",
    "key",
    "token",
    "auth",
    "bearer",
    "credentials",
)

_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"sk-[a-zA-Z0-9]{40,}"), "sk-****"),
    (re.compile(r"hf_[a-zA-Z0-9]{40,}"), "hf_****"),
    (re.compile(r"AIza[a-zA-Z0-9_-]{35}"), "AIza****"),
    (re.compile(r"Bearer\s+[a-zA-Z0-9_.-]{20,}"), "Bearer ****"),
]


def mask_secret(secret: Any) -> Any:
    """Mask a secret value, keeping the first and last four characters of long values."""
    if not secret or not isinstance(secret, str):
        return secret
    if len(secret) <= 8:
        return "****"
    return secret[:4] + "*" * max(4, len(secret) - 8) + secret[-4:]


def mask_sensitive_data(text: Any) -> Any:
    """Replace well-known API key and bearer-token shapes inside free text."""
    if not isinstance(text, str):
        return text
    for pattern, replacement in _PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def is_sensitive_key(key: str) -> bool:
    lowered = key.lower()
    return any(s in lowered for s in _SENSITIVE_KEYS)


def sanitize_params(params: Any) -> Any:
    """Return a copy of *params* with sensitive values replaced by ``'***'``.

    Recurses into nested dicts and lists. Call this before logging rendered
    headers or bodies.
    """
    if isinstance(params, dict):
        return {
            k: "***" if isinstance(k, str) and is_sensitive_key(k) else sanitize_params(v)
            for k, v in params.items()
        }
    if isinstance(params, list):
        return [sanitize_params(v) for v in params]
    return mask_sensitive_data(params)
