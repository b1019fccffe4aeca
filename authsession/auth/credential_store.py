"""
Credential Store
================
Key-value persistence for the bearer token and the "already greeted" flag.

Two storage scopes:
    1. Durable   — survives restarts (``JsonFileStorage``, default
       ``auth_state.json``). Holds the token.
    2. Ephemeral — lives as long as this process / tab
       (``MemoryStorage``). Holds the welcome flag.

No validation happens here. Concurrent use of the same state file by
several processes is best-effort: last writer wins, no locking.

Security:
    - Token values are never logged.
    - ``auth_state.json`` should be added to ``.gitignore``.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)


_DEFAULT_TOKEN_KEY = "authToken"
_DEFAULT_WELCOME_KEY = "hasWelcomed"


# ---------------------------------------------------------------------------
# Storage backends
# ---------------------------------------------------------------------------

class KeyValueStorage(ABC):
    """Minimal string key-value contract shared by all backends."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        ...


class MemoryStorage(KeyValueStorage):
    """In-process storage. Used for tab-scoped (ephemeral) state."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStorage(KeyValueStorage):
    """Durable storage backed by a single JSON object file.

    The file is re-read on every ``get`` so a value written by a previous
    run (or another process) is picked up. Writes go to a temp file in
    the same directory and are moved into place.
    """

    def __init__(self, path: str):
        self.path = Path(path)

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning(f"[STORE] Corrupt state file {self.path}: {exc}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"[STORE] State file {self.path} is not a JSON object — ignoring")
            return {}
        return {str(k): str(v) for k, v in data.items() if v is not None}

    def _save(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{self.path.name}.", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        except OSError:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)


# ---------------------------------------------------------------------------
# Credential store
# ---------------------------------------------------------------------------

class CredentialStore:
    """Token + welcome-flag accessors over a durable and an ephemeral backend."""

    def __init__(
        self,
        durable: Optional[KeyValueStorage] = None,
        ephemeral: Optional[KeyValueStorage] = None,
        *,
        token_key: str = _DEFAULT_TOKEN_KEY,
        welcome_key: str = _DEFAULT_WELCOME_KEY,
    ):
        self.durable = durable if durable is not None else MemoryStorage()
        self.ephemeral = ephemeral if ephemeral is not None else MemoryStorage()
        self.token_key = token_key
        self.welcome_key = welcome_key

    @classmethod
    def from_config(cls, config) -> "CredentialStore":
        """File-backed durable storage at ``config.state_file``, in-memory flag."""
        return cls(
            durable=JsonFileStorage(config.state_file),
            ephemeral=MemoryStorage(),
            token_key=config.token_key,
            welcome_key=config.welcome_key,
        )

    # ── Token (durable) ───────────────────────────────────────────

    def get_token(self) -> Optional[str]:
        return self.durable.get(self.token_key) or None

    def set_token(self, token: str) -> None:
        self.durable.set(self.token_key, token)
        logger.debug("[STORE] Token stored")

    def clear_token(self) -> None:
        self.durable.remove(self.token_key)
        logger.debug("[STORE] Token cleared")

    # ── Welcome flag (ephemeral) ──────────────────────────────────

    def get_welcome_flag(self) -> bool:
        return self.ephemeral.get(self.welcome_key) is not None

    def set_welcome_flag(self) -> None:
        self.ephemeral.set(self.welcome_key, "true")

    def clear_welcome_flag(self) -> None:
        self.ephemeral.remove(self.welcome_key)
