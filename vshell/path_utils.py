"""Helpers for working with POSIX paths inside the VFS."""

from __future__ import annotations

import re
from collections.abc import Iterable
from pathlib import PurePosixPath

from .exceptions import InvalidOperation, NodeNotFound
from .nodes import VirtualDirectory, VirtualNode

ROOT = PurePosixPath("/")

RESERVED_NAMES = frozenset({".", ".."})
_NAME_RE = re.compile(r"^[^/\x00]+$")


def check_name(name: str) -> str:
    """Reject empty or reserved segments used as literal node names."""
    if not name or name in RESERVED_NAMES or not _NAME_RE.match(name):
        raise InvalidOperation(f"invalid name: '{name}'")
    return name


class PathResolverMixin:
    """Utilities for resolving and normalizing POSIX paths."""

    root: VirtualDirectory
    cwd: VirtualDirectory

    def _normalize(self, path: str | PurePosixPath | None) -> PurePosixPath:
        if path is None or str(path) == "":
            raw = self.cwd.path()
        else:
            raw = PurePosixPath(path)
            if not raw.is_absolute():
                raw = self.cwd.path().joinpath(raw)
        parts: list[str] = []
        for part in raw.parts:
            if part == "." or not part.strip("/"):
                continue
            if part == "..":
                if parts:
                    parts.pop()
                continue
            parts.append(part)
        return PurePosixPath("/" + "/".join(parts)) if parts else ROOT

    def _iterate_parts(self, path: PurePosixPath) -> Iterable[str]:
        for part in path.parts:
            if part in ("", "/"):
                continue
            yield part

    def _resolve_node(self, path: str | PurePosixPath) -> VirtualNode:
        target = self._normalize(path)
        current: VirtualNode = self.root
        for part in self._iterate_parts(target):
            if not isinstance(current, VirtualDirectory):
                raise InvalidOperation(f"'{current.path()}': Not a directory")
            current = current.get_child(part)
        return current

    def _resolve_dir(self, path: str | PurePosixPath) -> VirtualDirectory:
        node = self._resolve_node(path)
        if not isinstance(node, VirtualDirectory):
            raise InvalidOperation(f"'{node.path()}': Not a directory")
        return node

    def _split_parent(self, path: str | PurePosixPath) -> tuple[PurePosixPath, str]:
        target = self._normalize(path)
        if target == ROOT:
            raise InvalidOperation("operation not permitted on '/'")
        return target.parent, target.name

    def _nearest_existing(self, path: PurePosixPath) -> tuple[VirtualDirectory, list[str]]:
        """Walk ``path`` and return the deepest existing directory plus missing names."""
        current = self.root
        parts = list(self._iterate_parts(path))
        for idx, part in enumerate(parts):
            try:
                child = current.get_child(part)
            except NodeNotFound:
                return current, parts[idx:]
            if not isinstance(child, VirtualDirectory):
                raise InvalidOperation(f"'{child.path()}': Not a directory")
            current = child
        return current, []


__all__ = ["PathResolverMixin", "check_name", "RESERVED_NAMES", "ROOT"]
