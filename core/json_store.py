# core/json_store.py
"""
Whole-file JSON array persistence.

A store owns one JSON document holding a top-level array. Reads always go to
disk; writes replace the file atomically. Read-modify-write cycles run under a
per-store lock so concurrent requests in one process cannot lose updates.
"""

import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List

from core.errors import StoreError

logger = logging.getLogger(__name__)


class JsonFileStore:
    """Locked get/put access to a JSON array file"""

    def __init__(self, path):
        self.path = Path(path)
        self._lock = threading.RLock()

    def _ensure_exists(self) -> None:
        if not self.path.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text('[]', encoding='utf-8')
            logger.info(f"Created empty store at {self.path}")

    def get(self) -> List[Any]:
        """Return the full array, creating an empty file on first access"""
        with self._lock:
            self._ensure_exists()
            try:
                data = json.loads(self.path.read_text(encoding='utf-8'))
            except (OSError, ValueError) as e:
                logger.error(f"Error reading {self.path}: {e}")
                raise StoreError() from e

            if not isinstance(data, list):
                logger.error(f"{self.path} does not contain a JSON array")
                raise StoreError()
            return data

    def put(self, items: List[Any]) -> None:
        """Replace the file contents with items"""
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix='.tmp')
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as handle:
                    json.dump(items, handle, indent=2, ensure_ascii=False)
                os.replace(tmp_path, self.path)
            except OSError as e:
                logger.error(f"Error writing to {self.path}: {e}")
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise StoreError() from e

    @contextmanager
    def transaction(self) -> Iterator[List[Any]]:
        """
        Yield the current array for in-place modification and persist it on exit.

        Nothing is written when the block raises.
        """
        with self._lock:
            items = self.get()
            yield items
            self.put(items)
