"""
JSON File Storage Implementation

DESIGN DECISION: The whole store is one JSON document on disk because:
1. Personal finance data for one user is small
2. No database setup required
3. The file is human-readable and easy to inspect
4. Writes can be made atomic with a rename

TRADEOFFS:
- Every write rewrites the whole document (fine at this size)
- No cross-process locking: one active session per file
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from kanakku.services.storage.interface import (
    CorruptDataError,
    KeyValueStoreInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


class JsonFileKeyValueStore(KeyValueStoreInterface):
    """
    Key-value store persisted as a single JSON object.

    The file is read once on first access; every mutation rewrites it
    through a temporary file and an atomic replace.
    """

    def __init__(self, path: Path):
        self._path = Path(path)
        self._data: Optional[dict[str, Any]] = None

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, Any]:
        if self._data is None:
            if not self._path.exists():
                self._data = {}
            else:
                try:
                    raw = self._path.read_text(encoding="utf-8")
                except OSError as e:
                    raise StorageError(f"Cannot read store {self._path}: {e}")
                try:
                    data = json.loads(raw) if raw.strip() else {}
                except json.JSONDecodeError as e:
                    raise CorruptDataError(f"Store {self._path} is not valid JSON: {e}")
                if not isinstance(data, dict):
                    raise CorruptDataError(f"Store {self._path} must hold a JSON object")
                self._data = data
        return self._data

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        retry=retry_if_exception_type(OSError),
        reraise=True,
    )
    def _write(self, payload: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent,
            prefix=f".{self._path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, self._path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _flush(self, data: dict[str, Any]) -> None:
        payload = json.dumps(data, ensure_ascii=False, indent=2)
        try:
            self._write(payload)
        except OSError as e:
            logger.error("store_write_failed", path=str(self._path), error=str(e))
            raise StorageError(f"Cannot write store {self._path}: {e}")
        # Cache only reflects what reached disk
        self._data = data

    def get(self, key: str) -> Optional[Any]:
        value = self._load().get(key)
        # Hand out copies so callers cannot mutate the cache
        return json.loads(json.dumps(value)) if value is not None else None

    def set(self, key: str, value: Any) -> None:
        data = {**self._load(), key: json.loads(json.dumps(value))}
        self._flush(data)

    def delete(self, key: str) -> None:
        current = self._load()
        if key in current:
            self._flush({k: v for k, v in current.items() if k != key})

    def keys(self) -> list[str]:
        return list(self._load())
