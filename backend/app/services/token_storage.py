"""JSON-file key/value store standing in for browser local storage."""
from __future__ import annotations

import json
from pathlib import Path
from threading import Lock
from typing import Dict, Optional

from app.core.config import get_settings
from app.core.logging import logger


class LocalStorage:
    """A tiny persistent string map; the auth token lives under one key."""

    def __init__(self, path: Optional[str] = None) -> None:
        settings = get_settings()
        self._path = Path(path or settings.token_storage_path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = Lock()
        self._items: Dict[str, str] = {}
        self._load()

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
            if isinstance(payload, dict):
                self._items = {str(k): str(v) for k, v in payload.items()}
        except Exception as exc:
            logger.warning(
                "Failed to load local storage; starting empty",
                path=str(self._path),
                error=str(exc),
            )

    def _save(self) -> None:
        tmp_path = self._path.with_suffix(".tmp")
        with tmp_path.open("w", encoding="utf-8") as handle:
            json.dump(self._items, handle, indent=2, ensure_ascii=True)
        tmp_path.replace(self._path)

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            self._items[key] = value
            self._save()

    def remove_item(self, key: str) -> None:
        with self._lock:
            if self._items.pop(key, None) is not None:
                self._save()
