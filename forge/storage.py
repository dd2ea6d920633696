"""Durable key-value record for the persisted subset of Forge state.

The record is a single JSON document whose shape is ``PersistedState``::

    {
      "credential": "gho_..." | null,
      "user": {"handle": ..., "avatar_ref": ..., "profile_ref": ...} | null,
      "project_name": "GENESIS-ALPHA",
      "destination_path": "/root/projects/forge",
      "template_id": "fullstack"
    }
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from forge.errors import StorageError
from forge.models import PersistedState
from forge.utils import load_json, write_json


class JsonStateStorage:
    """Reads and writes ``PersistedState`` as a JSON file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Optional[PersistedState]:
        """Return the stored state, or ``None`` if nothing has been saved yet.

        Raises:
            StorageError: If the file exists but is not a valid record.
        """
        if not self.path.exists():
            return None
        try:
            return PersistedState.model_validate(load_json(self.path))
        except (json.JSONDecodeError, ValidationError, OSError) as exc:
            raise StorageError(self.path, f"unreadable state record ({exc})") from exc

    def save(self, state: PersistedState) -> Path:
        try:
            return write_json(state.model_dump(mode="json"), self.path)
        except OSError as exc:
            raise StorageError(self.path, f"cannot write state record ({exc})") from exc

    def delete(self) -> None:
        self.path.unlink(missing_ok=True)
