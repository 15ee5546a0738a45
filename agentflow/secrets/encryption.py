"""Per-entry token encryption for the local secret store."""

import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from agentflow.exceptions import DecryptionError, SecretStoreError

logger = logging.getLogger(__name__)


def _fernet_from_key(key: Optional[str]) -> tuple[Fernet, bool]:
    """Build the cipher for *key*. Returns (cipher, ephemeral)."""
    if key:
        try:
            return Fernet(key.encode()), False
        except (ValueError, TypeError) as exc:
            raise SecretStoreError(
                "AGENTFLOW_SECRETS_KEY is not a valid Fernet key "
                f"(expected 32 url-safe base64 bytes): {exc}"
            ) from exc

    logger.warning(
        "[Secrets] AGENTFLOW_SECRETS_KEY unset, using an ephemeral key for this process; "
        "secrets cached now cannot be read by later runs"
    )
    return Fernet(Fernet.generate_key()), True


class SecretEncryption:
    """Turns one secret value into one self-contained store token and back.

    Tokens are Fernet (authenticated, random IV), so two writes of the same
    value never produce the same token and a token written under another key
    fails to decrypt instead of yielding garbage.

    Attributes:
        ephemeral: True when no key was configured and a throwaway key is in use.
    """

    def __init__(self, key: Optional[str] = None) -> None:
        self._fernet, self.ephemeral = _fernet_from_key(key)

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode()

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")

    def decrypt(self, ciphertext: str, alias: str = "") -> str:
        """Recover the value stored under *alias*.

        Raises:
            DecryptionError: wrong key, tampered token, or not a token at all.
        """
        try:
            return self._fernet.decrypt(ciphertext.encode("ascii")).decode("utf-8")
        except (InvalidToken, UnicodeError, AttributeError) as exc:
            raise DecryptionError(
                f"Store entry '{alias}' does not decrypt with the configured key", alias=alias,
            ) from exc
