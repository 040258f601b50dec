from __future__ import annotations

import json
import os
from hashlib import sha256
from pathlib import Path
from typing import Any, Protocol

"""
Durable storage for per-user progress ledgers.

The store hands over a JSON-ready mapping; storage backends only need to persist it
and give it back unchanged. Two backends live here:
- `JsonFileProgressStorage`: one JSON file per user under a base directory.
- `InMemoryProgressStorage`: process-local dict (tests, demo API).
"""


class ProgressStorage(Protocol):
    def load(self, user_id: str) -> dict[str, Any] | None: ...

    def save(self, user_id: str, payload: dict[str, Any]) -> None: ...


class JsonFileProgressStorage:
    """A filesystem-backed ledger store keyed by user id."""

    def __init__(self, base_dir: Path):
        self._base_dir = Path(base_dir)

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def _user_path(self, user_id: str) -> Path:
        """Return the file path for a user's ledger (hash-based)."""
        digest = sha256(f"user:{user_id}".encode("utf-8")).hexdigest()
        return self._base_dir / f"{digest}.json"

    def load(self, user_id: str) -> dict[str, Any] | None:
        """Return the stored payload, or None for a user with no ledger yet.

        Raises:
            ValueError: If the file exists but is not a JSON object.
        """
        path = self._user_path(user_id)
        if not path.exists():
            return None
        raw = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise ValueError(f"Corrupt progress file for user '{user_id}': expected an object.")
        return raw

    def save(self, user_id: str, payload: dict[str, Any]) -> None:
        """Write the payload durably before returning.

        Notes:
        - Writes via a temporary file + fsync + atomic replace, so a crash leaves either
          the old ledger or the new one on disk, never a partial file.
        """
        path = self._user_path(user_id)
        path.parent.mkdir(parents=True, exist_ok=True)

        tmp = path.with_suffix(".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            f.write(json.dumps(payload, ensure_ascii=False))
            f.flush()
            os.fsync(f.fileno())
        tmp.replace(path)


class InMemoryProgressStorage:
    """Dict-backed storage; payloads are deep-copied through JSON on both sides."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def load(self, user_id: str) -> dict[str, Any] | None:
        raw = self._data.get(user_id)
        return json.loads(raw) if raw is not None else None

    def save(self, user_id: str, payload: dict[str, Any]) -> None:
        self._data[user_id] = json.dumps(payload, ensure_ascii=False)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._data
