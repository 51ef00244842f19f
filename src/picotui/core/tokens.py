"""Persistent session tokens keyed by server URL.

Tokens live in ``~/.config/picotui/tokens.json`` as a JSON object mapping the
normalized server URL to ``{"auth", "refresh", "saved_at"}``. The file may
hold entries for several servers. Every write rewrites the whole file.
"""

from __future__ import annotations

import json
import os
import time
from pathlib import Path

import structlog
from pydantic import BaseModel, ValidationError

from picotui.core.exceptions import TokenStoreError

logger = structlog.get_logger()

DIR_MODE = 0o700
FILE_MODE = 0o600


def normalize_url(url: str) -> str:
    """Strip trailing slashes so lookups and writes use the same key."""
    return url.rstrip("/")


class TokenEntry(BaseModel):
    """A persisted token pair."""

    auth: str
    refresh: str
    saved_at: int


class TokenStore:
    """JSON file store for bearer tokens.

    Loading never raises: a missing or corrupt file simply means no token.
    Saving and deleting raise TokenStoreError, which callers log and ignore.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or self.get_default_path()

    @classmethod
    def get_default_path(cls) -> Path:
        """Get the token file path.

        Returns:
            Path to the token file (~/.config/picotui/tokens.json).
        """
        return Path.home() / ".config" / "picotui" / "tokens.json"

    def load(self, url: str) -> TokenEntry | None:
        """Return the saved tokens for a server, or None."""
        try:
            tokens = self._read_all()
        except TokenStoreError as e:
            logger.debug("Token file unreadable", path=str(self.path), error=str(e))
            return None
        return tokens.get(normalize_url(url))

    def save(self, url: str, auth: str, refresh: str) -> TokenEntry:
        """Save a token pair for a server, replacing any previous entry.

        Raises:
            TokenStoreError: If the directory or file cannot be written.
        """
        try:
            tokens = self._read_all()
        except TokenStoreError:
            tokens = {}

        entry = TokenEntry(auth=auth, refresh=refresh, saved_at=int(time.time()))
        tokens[normalize_url(url)] = entry
        self._write_all(tokens)
        logger.info("Saved session tokens", url=normalize_url(url))
        return entry

    def delete(self, url: str) -> None:
        """Remove the entry for a server. A missing file is not an error.

        Raises:
            TokenStoreError: If the file exists but cannot be rewritten.
        """
        if not self.path.exists():
            return
        try:
            tokens = self._read_all()
        except TokenStoreError:
            tokens = {}
        if tokens.pop(normalize_url(url), None) is None:
            return
        self._write_all(tokens)
        logger.info("Deleted session tokens", url=normalize_url(url))

    def _read_all(self) -> dict[str, TokenEntry]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise TokenStoreError("Cannot read token file", details=str(e)) from e
        if not isinstance(raw, dict):
            raise TokenStoreError("Cannot read token file", details="expected a JSON object")

        tokens: dict[str, TokenEntry] = {}
        for url, value in raw.items():
            try:
                tokens[url] = TokenEntry.model_validate(value)
            except ValidationError:
                logger.warning("Skipping malformed token entry", url=url)
        return tokens

    def _write_all(self, tokens: dict[str, TokenEntry]) -> None:
        data = {url: entry.model_dump() for url, entry in tokens.items()}
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            if os.name == "posix":
                self.path.parent.chmod(DIR_MODE)

            fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, FILE_MODE)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.path)

            # Set restrictive permissions (owner read/write only)
            if os.name == "posix":
                self.path.chmod(FILE_MODE)
        except OSError as e:
            raise TokenStoreError("Cannot write token file", details=str(e)) from e
