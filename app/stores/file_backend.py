"""Local JSON file backend: one JSON array per store (single-process development)."""
from __future__ import annotations

import json
import os
import tempfile
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Generic

from pydantic import ValidationError as PydanticValidationError

from app.errors import StorageError
from app.stores.base import R


class JsonFileStore(Generic[R]):
    """
    Records kept as a JSON array in ``path``; keyed lookups are linear scans.

    The in-process lock serializes every read-modify-write, which makes
    ``replace_if`` a compare-and-swap as long as one process owns the file.
    """

    def __init__(self, path: str | Path, model: type[R], key_of: Callable[[R], str]):
        self.path = Path(path)
        self.model = model
        self.key_of = key_of
        self._lock = threading.RLock()

    # -------------------- helpers --------------------

    def _read(self) -> list[R]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8") or "[]")
        except (OSError, ValueError) as e:
            raise StorageError(f"Cannot read {self.path.name}: {e}") from e
        if not isinstance(raw, list):
            raise StorageError(f"{self.path.name} must contain a JSON array")
        try:
            return [self.model.model_validate(item) for item in raw]
        except PydanticValidationError as e:
            raise StorageError(f"Invalid record in {self.path.name}: {e}") from e

    def _write(self, records: list[R]) -> None:
        payload = json.dumps([r.to_json_dict() for r in records], indent=2)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(payload)
                os.replace(tmp, self.path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
        except OSError as e:
            raise StorageError(f"Cannot write {self.path.name}: {e}") from e

    def _index(self, records: list[R], key: str) -> int:
        for i, rec in enumerate(records):
            if self.key_of(rec) == key:
                return i
        return -1

    # -------------------- API ------------------------

    def get(self, key: str) -> R | None:
        with self._lock:
            records = self._read()
            i = self._index(records, key)
            return records[i] if i >= 0 else None

    def get_all(self) -> list[R]:
        with self._lock:
            return self._read()

    def upsert(self, record: R) -> None:
        with self._lock:
            records = self._read()
            i = self._index(records, self.key_of(record))
            if i >= 0:
                records[i] = record
            else:
                records.append(record)
            self._write(records)

    def delete(self, key: str) -> bool:
        with self._lock:
            records = self._read()
            i = self._index(records, key)
            if i < 0:
                return False
            del records[i]
            self._write(records)
            return True

    def replace_if(self, key: str, predicate: Callable[[R], bool], record: R) -> bool:
        with self._lock:
            records = self._read()
            i = self._index(records, key)
            if i < 0 or not predicate(records[i]):
                return False
            records[i] = record
            self._write(records)
            return True

