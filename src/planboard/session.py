"""Bearer token persistence and session lifecycle."""

import json
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path

import structlog

logger = structlog.get_logger()


class TokenStore(ABC):
    """Load/save/clear access to one bearer token."""

    @abstractmethod
    def load(self) -> str | None:
        """Return the stored token, or None."""

    @abstractmethod
    def save(self, token: str | None) -> None:
        """Store ``token``; an empty value clears it."""

    @abstractmethod
    def clear(self) -> None:
        """Forget the token."""


class FileTokenStore(TokenStore):
    """Persists a single bearer token under one key in a JSON file.

    The file may hold other keys; only ``key`` is touched.
    """

    def __init__(self, path: Path, key: str = "calenderapp.jwt") -> None:
        self.path = path.expanduser()
        self.key = key

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Unreadable session file", path=str(self.path), error=str(e))
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    def load(self) -> str | None:
        token = self._read().get(self.key)
        return token if isinstance(token, str) and token else None

    def save(self, token: str | None) -> None:
        if not token:
            self.clear()
            return
        data = self._read()
        data[self.key] = token
        self._write(data)

    def clear(self) -> None:
        data = self._read()
        if self.key in data:
            del data[self.key]
            self._write(data)


class MemoryTokenStore(TokenStore):
    """Non-persistent store, used for one-off sessions and tests."""

    def __init__(self, token: str | None = None) -> None:
        self._token = token or None

    def load(self) -> str | None:
        return self._token

    def save(self, token: str | None) -> None:
        self._token = token or None

    def clear(self) -> None:
        self._token = None


class Session:
    """Couples the token store with the re-authentication signal.

    ``on_invalid`` is called after the token has been cleared because the
    server rejected it.
    """

    def __init__(
        self,
        store: TokenStore,
        on_invalid: Callable[[], None] | None = None,
    ) -> None:
        self.store = store
        self._on_invalid = on_invalid
        self.invalidated = False

    @property
    def token(self) -> str | None:
        return self.store.load()

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None

    def authenticate(self, token: str) -> None:
        self.store.save(token)
        self.invalidated = False

    def logout(self) -> None:
        self.store.clear()

    def invalidate(self) -> None:
        """Drop the token and request re-authentication."""
        self.store.clear()
        if self.invalidated:
            return
        self.invalidated = True
        logger.info("Session invalidated, re-authentication required")
        if self._on_invalid is not None:
            self._on_invalid()
