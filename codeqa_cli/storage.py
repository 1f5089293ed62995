"""Persistence for question history and user settings."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from . import config_manager
from .config import HISTORY_FILE, MAX_HISTORY
from .models import Answer, HistoryEntry

logger = logging.getLogger(__name__)


# ===================================================================
# Interfaces
# ===================================================================

class HistoryStore(Protocol):
    def append(self, entry: HistoryEntry) -> List[HistoryEntry]: ...

    def list(self) -> List[HistoryEntry]: ...

    def get(self, entry_id: str) -> Optional[HistoryEntry]: ...

    def remove_by_id(self, entry_id: str) -> List[HistoryEntry]: ...

    def clear(self) -> None: ...


class SettingsStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...


def make_entry(question: str, answer: Answer, source: str = "") -> HistoryEntry:
    """Build a history entry with a fresh id and the current timestamp."""
    return HistoryEntry(
        id=uuid.uuid4().hex,
        timestamp=datetime.now().isoformat(timespec="seconds"),
        question=question,
        answer=answer.answer,
        references=list(answer.references),
        tags=list(answer.tags),
        refactor_suggestion=answer.refactor_suggestion,
        source=source,
    )


def _find(entries: List[HistoryEntry], entry_id: str) -> Optional[HistoryEntry]:
    for entry in entries:
        if entry.id == entry_id:
            return entry
    # Allow unambiguous id prefixes, as printed by `cq history list`
    matches = [entry for entry in entries if entry.id.startswith(entry_id)]
    return matches[0] if entry_id and len(matches) == 1 else None


# ===================================================================
# History
# ===================================================================

class InMemoryHistoryStore:
    """Newest-first history kept in process memory."""

    def __init__(self, entries: Optional[List[HistoryEntry]] = None, max_entries: int = MAX_HISTORY):
        self.max_entries = max_entries
        self._entries: List[HistoryEntry] = list(entries or [])[:max_entries]

    def append(self, entry: HistoryEntry) -> List[HistoryEntry]:
        self._entries = [entry] + self._entries[: self.max_entries - 1]
        return list(self._entries)

    def list(self) -> List[HistoryEntry]:
        return list(self._entries)

    def get(self, entry_id: str) -> Optional[HistoryEntry]:
        return _find(self._entries, entry_id)

    def remove_by_id(self, entry_id: str) -> List[HistoryEntry]:
        target = _find(self._entries, entry_id)
        if target is not None:
            self._entries = [entry for entry in self._entries if entry.id != target.id]
        return list(self._entries)

    def clear(self) -> None:
        self._entries = []


class JsonHistoryStore:
    """Newest-first history persisted as a JSON array (``~/.codeqa/history.json``)."""

    def __init__(self, path: Optional[Path] = None, max_entries: int = MAX_HISTORY):
        self.path = Path(path) if path is not None else HISTORY_FILE
        self.max_entries = max_entries

    def _load(self) -> List[HistoryEntry]:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Ignoring unreadable history file %s: %s", self.path, exc)
            return []
        if not isinstance(data, list):
            return []

        entries = []
        for item in data:
            if isinstance(item, dict) and "id" in item:
                entries.append(HistoryEntry.from_dict(item))
        return entries

    def _save(self, entries: List[HistoryEntry]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = [entry.to_dict() for entry in entries[: self.max_entries]]
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    def append(self, entry: HistoryEntry) -> List[HistoryEntry]:
        entries = [entry] + self._load()
        entries = entries[: self.max_entries]
        self._save(entries)
        return entries

    def list(self) -> List[HistoryEntry]:
        return self._load()[: self.max_entries]

    def get(self, entry_id: str) -> Optional[HistoryEntry]:
        return _find(self._load(), entry_id)

    def remove_by_id(self, entry_id: str) -> List[HistoryEntry]:
        entries = self._load()
        target = _find(entries, entry_id)
        if target is None:
            return entries
        entries = [entry for entry in entries if entry.id != target.id]
        self._save(entries)
        return entries

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()


# ===================================================================
# Settings
# ===================================================================

class InMemorySettingsStore:
    def __init__(self, values: Optional[Dict[str, Any]] = None):
        self._values: Dict[str, Any] = dict(values or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        if value is None:
            self._values.pop(key, None)
        else:
            self._values[key] = value


class TomlSettingsStore:
    """Settings kept in the ``[settings]`` table of ``config.toml``."""

    def get(self, key: str, default: Any = None) -> Any:
        return config_manager.load_settings().get(key, default)

    def set(self, key: str, value: Any) -> None:
        if not config_manager.save_setting(key, value):
            logger.warning("Could not write setting %r to %s", key, config_manager.CONFIG_FILE)
