"""Persistent per-user counters backed by JSON documents."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import stat
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple, Type

from pydantic import BaseModel, Field, ValidationError

from ..errors import PersistenceError

logger = logging.getLogger(__name__)

LEVELS = "levels"
ECONOMY = "economy"
DEFAULT_FILE_MODE = 0o644


class LevelRecord(BaseModel):
    """Leveling progress for a single user."""

    xp: int = Field(default=0, ge=0)
    level: int = Field(default=0, ge=0)


class EconomyRecord(BaseModel):
    """Currency balance for a single user."""

    balance: int = Field(default=0, ge=0)
    last_daily: Optional[datetime] = None


DEFAULT_NAMESPACES: Dict[str, Type[BaseModel]] = {
    LEVELS: LevelRecord,
    ECONOMY: EconomyRecord,
}


class CounterStore:
    """Namespaced user records with write-through persistence.

    Each namespace is a flat JSON object on disk mapping user id to record and
    is rewritten wholesale on every ``set``. Callers that read, await and then
    write a record should hold ``lock(namespace, user_id)`` for the duration.
    """

    def __init__(
        self,
        data_dir: Path | str,
        namespaces: Optional[Mapping[str, Type[BaseModel]]] = None,
    ):
        self._data_dir = Path(data_dir)
        self._models: Dict[str, Type[BaseModel]] = dict(namespaces or DEFAULT_NAMESPACES)
        self._data: Dict[str, Dict[str, BaseModel]] = {name: {} for name in self._models}
        self._locks: Dict[Tuple[str, str], asyncio.Lock] = {}

    @property
    def namespaces(self) -> Tuple[str, ...]:
        return tuple(self._models)

    def path_for(self, namespace: str) -> Path:
        self._model(namespace)
        return self._data_dir / f"{namespace}.json"

    def load(self) -> None:
        """Read every namespace from disk, starting fresh on unreadable files."""

        for namespace in self._models:
            self._data[namespace] = self._read_namespace(namespace)
            logger.info(
                "Loaded %d %s record(s) from %s",
                len(self._data[namespace]),
                namespace,
                self.path_for(namespace),
            )

    def get(self, namespace: str, user_id: str | int) -> BaseModel:
        model = self._model(namespace)
        record = self._data[namespace].get(str(user_id))
        if record is None:
            return model()
        return record.model_copy()

    def set(self, namespace: str, user_id: str | int, record: BaseModel) -> None:
        model = self._model(namespace)
        if not isinstance(record, model):
            raise TypeError(f"{namespace} records must be {model.__name__}, got {type(record).__name__}")
        key = str(user_id)
        entries = self._data[namespace]
        previous = entries.get(key)
        entries[key] = record.model_copy()
        try:
            self._write_namespace(namespace)
        except PersistenceError:
            # Memory must not run ahead of what is on disk
            if previous is None:
                del entries[key]
            else:
                entries[key] = previous
            raise

    def count(self, namespace: str) -> int:
        self._model(namespace)
        return len(self._data[namespace])

    def lock(self, namespace: str, user_id: str | int) -> asyncio.Lock:
        self._model(namespace)
        key = (namespace, str(user_id))
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def _model(self, namespace: str) -> Type[BaseModel]:
        try:
            return self._models[namespace]
        except KeyError:
            raise KeyError(f"Unknown counter namespace: {namespace!r}") from None

    def _read_namespace(self, namespace: str) -> Dict[str, BaseModel]:
        model = self._models[namespace]
        path = self.path_for(namespace)
        if not path.exists():
            return {}
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError):
            logger.warning("Could not read %s; starting %s fresh", path, namespace, exc_info=True)
            return {}
        if not isinstance(raw, dict):
            logger.warning("Expected a JSON object in %s; starting %s fresh", path, namespace)
            return {}

        records: Dict[str, BaseModel] = {}
        for user_id, payload in raw.items():
            try:
                records[str(user_id)] = model.model_validate(payload)
            except ValidationError:
                logger.warning("Skipping malformed %s record for user %s", namespace, user_id)
        return records

    def _write_namespace(self, namespace: str) -> None:
        path = self.path_for(namespace)
        payload = {
            user_id: record.model_dump(mode="json")
            for user_id, record in self._data[namespace].items()
        }
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{namespace}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    # mkstemp creates 0600 files; keep the mode of the file being replaced
                    os.fchmod(handle.fileno(), _file_mode(path))
                    json.dump(payload, handle, indent=2, ensure_ascii=False)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise PersistenceError(f"Failed to write {namespace} records to {path}") from exc


def _file_mode(path: Path) -> int:
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        return DEFAULT_FILE_MODE
