"""
Key-value stores backing learned header mappings, supplier templates and the
entity registry.

Both stores expose the same small interface (get / put / delete / items /
keys / __contains__ / __len__) with last-write-wins semantics, so callers
take a store as a constructor argument and tests pass an InMemoryStore.

JsonFileStore is durable across restarts: the whole map is rewritten on
every change through a temp file and os.replace, so a crash mid-write
leaves the previous file intact.

Public API:
    InMemoryStore()
    JsonFileStore(path)
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)


class InMemoryStore:
    """Process-local key-value store."""

    def __init__(self, initial: dict[str, object] | None = None) -> None:
        self._data: dict[str, object] = dict(initial or {})

    def get(self, key: str, default: object = None) -> object:
        return self._data.get(key, default)

    def put(self, key: str, value: object) -> None:
        self._commit({**self._data, key: value})

    def delete(self, key: str) -> bool:
        if key not in self._data:
            return False
        self._commit({name: value for name, value in self._data.items() if name != key})
        return True

    def items(self) -> list[tuple[str, object]]:
        return list(self._data.items())

    def keys(self) -> list[str]:
        return list(self._data.keys())

    def clear(self) -> None:
        self._commit({})

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._data))

    def _commit(self, data: dict[str, object]) -> None:
        # Memory only changes once the new map has been persisted
        self._persist(data)
        self._data = data

    def _persist(self, data: dict[str, object]) -> None:
        """Hook for durable subclasses; in-memory stores keep nothing on disk."""


class JsonFileStore(InMemoryStore):
    """
    Key-value store persisted as a single pretty-printed JSON object.

    Values must be JSON-serialisable.  A missing file starts empty; an
    unreadable or non-object file starts empty with a warning and is
    overwritten on the next change.  A change whose write fails raises
    OSError and leaves the in-memory map as it was.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        super().__init__(_load_json_object(self.path))
        logger.debug(f"Opened store {self.path} with {len(self)} entries")

    def reload(self) -> None:
        """Re-read the file, discarding in-memory state."""
        self._data = _load_json_object(self.path)

    def _persist(self, data: dict[str, object]) -> None:
        _save_json_object(self.path, data)


# ═══════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═══════════════════════════════════════════════════════════════════════════

def _load_json_object(path: Path) -> dict[str, object]:
    """
    Load a JSON object from *path*.

    Returns an empty dict if the file does not exist or cannot be parsed.
    """
    if not path.exists():
        return {}
    try:
        with path.open("r", encoding="utf-8") as file_handle:
            data = json.load(file_handle)
        if not isinstance(data, dict):
            logger.warning(f"Store {path} is not a JSON object — starting fresh")
            return {}
        return data
    except Exception as exc:
        logger.warning(f"Failed to load store from {path}: {exc} — starting fresh")
        return {}


def _save_json_object(path: Path, data: dict[str, object]) -> None:
    """
    Atomically write *data* to *path* as pretty-printed JSON.

    Raises:
        OSError: If the directory cannot be created or the file written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    file_descriptor, temp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
    )
    try:
        with os.fdopen(file_descriptor, "w", encoding="utf-8") as file_handle:
            json.dump(data, file_handle, ensure_ascii=False, indent=2, sort_keys=True)
        os.replace(temp_name, path)
    except Exception:
        Path(temp_name).unlink(missing_ok=True)
        logger.error(f"Failed to save store to {path}")
        raise
