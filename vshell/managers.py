"""Collaborator classes that extend VirtualFileSystem behavior."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .adapters import StorageBackend
from .exceptions import ErrorKind, StorageError
from .result import Result

if TYPE_CHECKING:
    from .vfs import VirtualFileSystem

logger = logging.getLogger(__name__)


class PersistenceManager:
    """Save and load the whole tree through an injected backend."""

    def __init__(self, vfs: "VirtualFileSystem", backend: StorageBackend | None = None) -> None:
        self.vfs = vfs
        self.backend = backend

    @property
    def attached(self) -> bool:
        return self.backend is not None

    def save(self) -> Result[None]:
        if self.backend is None:
            return Result.ok()
        snapshot = self.vfs.serialize()
        try:
            saved = self.backend.save(snapshot)
        except StorageError as exc:
            return Result.from_error(exc)
        if not saved:
            logger.warning("persistence backend rejected the snapshot")
            return Result.fail("failed to save the file system", ErrorKind.SYSTEM)
        logger.debug("file system saved")
        return Result.ok()

    def load(self) -> Result[bool]:
        """Restore the tree; ``data`` is ``False`` when the backend holds nothing."""
        if self.backend is None:
            return Result.ok(False)
        try:
            snapshot = self.backend.load()
            if snapshot is None:
                return Result.ok(False)
            self.vfs.deserialize(snapshot)
        except StorageError as exc:
            logger.warning("could not load file system: %s", exc)
            return Result.from_error(exc)
        logger.info("file system loaded from backend")
        return Result.ok(True)

    def clear(self) -> Result[None]:
        if self.backend is not None:
            self.backend.clear()
        return Result.ok()


__all__ = ["PersistenceManager"]
