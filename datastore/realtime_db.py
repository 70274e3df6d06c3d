from __future__ import annotations
import copy
import json
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Optional

from settings import get_settings


def _split_path(path: str) -> List[str]:
    return [segment for segment in path.strip().split("/") if segment]


class RealtimeStore:
    """Path-addressed JSON tree, e.g. ``/devices/LIVE`` or ``/daily/2024-03-15``.

    Values written to a path replace whatever was there; reads and writes hand
    out deep copies so callers never share state with the store.
    """

    def __init__(self, name: str, persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self._root: Dict[str, Any] = {}
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def get(self, path: str) -> Any:
        with self._lock:
            node: Any = self._root
            for segment in _split_path(path):
                if not isinstance(node, dict) or segment not in node:
                    return None
                node = node[segment]
            return copy.deepcopy(node)

    def set(self, path: str, value: Any) -> None:
        segments = _split_path(path)
        if not segments:
            raise ValueError("Cannot overwrite the store root.")

        with self._lock:
            node = self._root
            for segment in segments[:-1]:
                child = node.get(segment)
                if not isinstance(child, dict):
                    child = {}
                    node[segment] = child
                node = child
            if value is None:
                node.pop(segments[-1], None)
            else:
                node[segments[-1]] = copy.deepcopy(value)
            self._persist()

    def children(self, path: str, limit_to_last: Optional[int] = None) -> Dict[str, Any]:
        """Return child entries ordered by key, optionally only the last ``limit_to_last``."""

        value = self.get(path)
        if not isinstance(value, dict):
            return {}
        keys = sorted(value.keys(), key=_key_order)
        if limit_to_last is not None:
            keys = keys[-limit_to_last:] if limit_to_last > 0 else []
        return {key: value[key] for key in keys}

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        self.persistence_path.write_text(json.dumps(self._root, indent=2, sort_keys=True))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            data = {}

        if isinstance(data, dict):
            self._root = data


def _key_order(key: str) -> tuple[int, int, str]:
    # Integer-like keys sort numerically ahead of string keys.
    if key.isdigit():
        return (0, int(key), key)
    return (1, 0, key)


@lru_cache
def build_default_store(
    name: Optional[str] = None,
    path: Optional[str] = None,
) -> RealtimeStore:
    settings = get_settings()
    store_name = "realtime" if name is None else name
    store_path = settings.store_path if path is None else path
    persistence = Path(store_path) if store_path else None
    return RealtimeStore(name=store_name, persistence_path=persistence)
