"""Persistence backend interfaces."""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .exceptions import StorageError

logger = logging.getLogger(__name__)

Snapshot = dict[str, Any]


class StorageBackend:
    """Opaque durable store for a whole tree snapshot."""

    def save(self, snapshot: Snapshot) -> bool:
        raise NotImplementedError

    def load(self) -> Snapshot | None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


@dataclass
class MemoryStorageBackend(StorageBackend):
    initial: Snapshot | None = None
    saves: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self._snapshot: Snapshot | None = copy.deepcopy(self.initial)

    def save(self, snapshot: Snapshot) -> bool:
        self._snapshot = copy.deepcopy(snapshot)
        self.saves += 1
        return True

    def load(self) -> Snapshot | None:
        return copy.deepcopy(self._snapshot)

    def clear(self) -> None:
        self._snapshot = None


@dataclass
class JsonFileBackend(StorageBackend):
    path: Path
    encoding: str = "utf-8"

    def __post_init__(self) -> None:
        self.path = Path(self.path)

    def save(self, snapshot: Snapshot) -> bool:
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(snapshot, indent=2, sort_keys=True), encoding=self.encoding)
            tmp.replace(self.path)
        except OSError as exc:
            logger.warning("could not write snapshot to %s: %s", self.path, exc)
            return False
        return True

    def load(self) -> Snapshot | None:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding=self.encoding))
        except (OSError, json.JSONDecodeError) as exc:
            raise StorageError(f"cannot read snapshot {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StorageError(f"corrupted snapshot in {self.path}")
        return data

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


__all__ = ["Snapshot", "StorageBackend", "MemoryStorageBackend", "JsonFileBackend"]
