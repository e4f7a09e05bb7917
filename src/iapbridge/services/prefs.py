from __future__ import annotations

import json
from pathlib import Path


class PrefsError(RuntimeError):
    pass


def _as_str_list(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(x) for x in value]


class JsonPrefsStore:
    """Key/value preferences kept in one JSON file.

    Every ``set_object`` rewrites the file before returning.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._data = self._load_or_create()

    def _load_or_create(self) -> dict[str, object]:
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise PrefsError(f"Invalid JSON in {self._path}: {e}") from e
        if not isinstance(raw, dict):
            raise PrefsError(f"{self._path} must hold a JSON object")
        return raw

    def _write(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(self._data, indent=2), encoding="utf-8")

    def has_key(self, key: str) -> bool:
        return key in self._data

    def get_object(self, key: str, default: object = None) -> object:
        return self._data.get(key, default)

    def set_object(self, key: str, value: object) -> None:
        self._data[key] = value
        self._write()

    def delete_key(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._write()

    # PayloadStorage
    def load(self, key: str) -> list[str]:
        return _as_str_list(self._data.get(key, []))

    def save(self, key: str, value: list[str]) -> None:
        self.set_object(key, list(value))


class MemoryPrefsStore:
    """In-memory PayloadStorage; counts writes so callers can check persistence."""

    def __init__(self, initial: dict[str, list[str]] | None = None) -> None:
        self.data: dict[str, list[str]] = {k: list(v) for k, v in (initial or {}).items()}
        self.saves = 0

    def load(self, key: str) -> list[str]:
        return list(self.data.get(key, []))

    def save(self, key: str, value: list[str]) -> None:
        self.data[key] = list(value)
        self.saves += 1
