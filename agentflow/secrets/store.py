"""LocalSecretStore — per-entry encrypted secret cache on local disk.

File format (store-private)::

    {"openai": "<fernet token>", "github": "<fernet token>"}

Each value is an independent Fernet token, so a single corrupt or foreign-key
entry is dropped on load while the rest of the store stays readable.

Writes are a load → mutate → persist critical section. Within a process a
lock per store path serializes them; across processes an exclusive ``flock``
on a sidecar ``<path>.lock`` file does. The JSON file itself is replaced
atomically so readers never observe a half-written store.
"""

import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

try:
    import fcntl
except ImportError:  # pragma: no cover - non-POSIX
    fcntl = None

from agentflow.exceptions import DecryptionError
from agentflow.secrets.encryption import SecretEncryption

logger = logging.getLogger(__name__)

_path_locks: dict[str, threading.Lock] = {}
_path_locks_guard = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    key = str(path.resolve())
    with _path_locks_guard:
        if key not in _path_locks:
            _path_locks[key] = threading.Lock()
        return _path_locks[key]


class LocalSecretStore:
    """Encrypted alias → secret mapping persisted as a JSON file.

    Args:
        path: Location of the store file. Parent directories are created on
            first write.
        encryption: A configured :class:`SecretEncryption` instance.
    """

    def __init__(self, path: Union[str, Path], encryption: SecretEncryption) -> None:
        self.path = Path(path)
        self._enc = encryption
        self._lock = _lock_for(self.path)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _read_raw(self) -> dict[str, str]:
        """Return the ciphertext mapping; any read or parse failure yields ``{}``."""
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            logger.warning("[Secrets] Local store %s unreadable, treating as empty: %s", self.path, exc)
            return {}
        if not isinstance(raw, dict):
            logger.warning("[Secrets] Local store %s is not a mapping, treating as empty", self.path)
            return {}
        return {k: v for k, v in raw.items() if isinstance(k, str) and isinstance(v, str)}

    def _decrypt_entry(self, alias: str, ciphertext: str) -> Optional[str]:
        try:
            return self._enc.decrypt(ciphertext, alias=alias)
        except DecryptionError:
            logger.warning("[Secrets] Dropping local store entry '%s': decryption failed", alias)
            return None

    def load(self) -> dict[str, str]:
        """Decrypt every entry, skipping the ones that fail."""
        secrets: dict[str, str] = {}
        for alias, ciphertext in self._read_raw().items():
            value = self._decrypt_entry(alias, ciphertext)
            if value is not None:
                secrets[alias] = value
        return secrets

    def get(self, alias: str) -> Optional[str]:
        ciphertext = self._read_raw().get(alias)
        if ciphertext is None:
            return None
        return self._decrypt_entry(alias, ciphertext)

    def __contains__(self, alias: str) -> bool:
        return self.get(alias) is not None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @contextmanager
    def _critical_section(self) -> Iterator[None]:
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            lock_path = self.path.with_name(self.path.name + ".lock")
            with open(lock_path, "a", encoding="utf-8") as lock_fp:
                if fcntl is not None:
                    fcntl.flock(lock_fp.fileno(), fcntl.LOCK_EX)
                try:
                    yield
                finally:
                    if fcntl is not None:
                        fcntl.flock(lock_fp.fileno(), fcntl.LOCK_UN)

    def _write_raw(self, entries: dict[str, str]) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=self.path.name, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fp:
                json.dump(entries, fp, indent=2, sort_keys=True)
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def put(self, alias: str, value: str, overwrite: bool = True) -> bool:
        """Encrypt and persist *value* under *alias*.

        With ``overwrite=False`` an existing readable entry is kept; an entry
        that no longer decrypts is replaced. Write failures are logged and
        reported as ``False`` rather than raised.

        Returns:
            ``True`` if the store file was updated.
        """
        try:
            with self._critical_section():
                entries = self._read_raw()
                existing = entries.get(alias)
                if not overwrite and existing is not None and self._decrypt_entry(alias, existing) is not None:
                    return False
                entries[alias] = self._enc.encrypt(value)
                self._write_raw(entries)
        except OSError as exc:
            logger.warning("[Secrets] Could not write local store %s: %s", self.path, exc)
            return False
        logger.debug("[Secrets] Cached secret '%s' in local store", alias)
        return True

    def delete(self, alias: str) -> bool:
        """Remove *alias* from the store. Returns ``True`` if it was present."""
        try:
            with self._critical_section():
                entries = self._read_raw()
                if alias not in entries:
                    return False
                del entries[alias]
                self._write_raw(entries)
        except OSError as exc:
            logger.warning("[Secrets] Could not write local store %s: %s", self.path, exc)
            return False
        return True
