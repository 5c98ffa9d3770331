"""
Key-value storage for per-client local state.

The ticket store and ledger persist three string records (balance, live
tickets, history) through this interface. Backends:

    InMemoryStorage  - dict-backed, for tests and throwaway instances
    JsonFileStorage  - one JSON object on disk, survives restarts

Reads never raise for missing or corrupt data; callers decide defaults.
"""

from __future__ import annotations

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, Optional

from logging_config import get_logger


logger = get_logger(__name__)


class KeyValueStorage:
    """Minimal get/set/remove contract over string values."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError


class InMemoryStorage(KeyValueStorage):
    """Dict-backed storage. Optional initial values make fixtures short."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class JsonFileStorage(KeyValueStorage):
    """
    Storage backed by a single JSON object file.

    The whole file is rewritten on every set/remove through a temporary
    file followed by os.replace, so a crash mid-write leaves the previous
    contents intact.

    A missing, unreadable or non-object file loads as empty.
    """

    def __init__(self, path: str):
        self._path = Path(path)
        self._lock = threading.Lock()
        self._data = self._load()
        logger.info(f"State file: {self._path} ({len(self._data)} keys)")

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value
            self._flush()

    def remove(self, key: str) -> None:
        with self._lock:
            if self._data.pop(key, None) is not None:
                self._flush()

    def _load(self) -> Dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read state file {self._path}, starting empty: {e}")
            return {}

        if not isinstance(raw, dict):
            logger.warning(f"State file {self._path} is not a JSON object, starting empty")
            return {}

        return {str(k): v for k, v in raw.items() if isinstance(v, str)}

    def _flush(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            prefix=self._path.name, suffix=".tmp", dir=str(self._path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, ensure_ascii=False)
            os.replace(tmp_path, self._path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
