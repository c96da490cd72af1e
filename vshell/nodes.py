"""Core node representations for the virtual filesystem."""

from __future__ import annotations

import time
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePosixPath

from .exceptions import NodeExists, NodeNotFound
from .permissions import DEFAULT_DIR_MODE, DEFAULT_FILE_MODE, mode_to_string
from .users import ROOT_USER


class NodeType(str, Enum):
    FILE = "f"
    DIRECTORY = "d"


@dataclass(eq=False)
class VirtualNode:
    """Base node stored inside the tree."""

    name: str
    parent: "VirtualDirectory" | None = None
    owner: str = ROOT_USER
    group: str = ROOT_USER
    mode: int = DEFAULT_FILE_MODE
    ctime: float = field(default_factory=time.time)
    mtime: float = field(default_factory=time.time)

    node_type = NodeType.FILE

    def path(self) -> PurePosixPath:
        if self.parent is None:
            return PurePosixPath("/")
        segments = []
        node: VirtualNode | None = self
        while node and node.parent is not None:
            segments.append(node.name)
            node = node.parent
        return PurePosixPath("/" + "/".join(reversed(segments))) if segments else PurePosixPath("/")

    @property
    def permissions(self) -> str:
        return mode_to_string(self.mode)

    def is_dir(self) -> bool:
        return self.node_type is NodeType.DIRECTORY

    def touch(self, when: float | None = None) -> None:
        self.mtime = time.time() if when is None else when


class VirtualFile(VirtualNode):
    """A file holding an opaque text payload."""

    node_type = NodeType.FILE

    def __init__(
        self,
        name: str,
        *,
        parent: "VirtualDirectory" | None = None,
        content: str = "",
        owner: str = ROOT_USER,
        group: str = ROOT_USER,
        mode: int = DEFAULT_FILE_MODE,
    ) -> None:
        super().__init__(name=name, parent=parent, owner=owner, group=group, mode=mode)
        self.content = content

    def read(self) -> str:
        return self.content

    def write(self, data: str, *, append: bool = False) -> None:
        if append:
            self.content += data
        else:
            self.content = data
        self.touch()


class VirtualDirectory(VirtualNode):
    """A directory owning its children by name."""

    node_type = NodeType.DIRECTORY

    def __init__(
        self,
        name: str,
        *,
        parent: "VirtualDirectory" | None = None,
        owner: str = ROOT_USER,
        group: str = ROOT_USER,
        mode: int = DEFAULT_DIR_MODE,
    ) -> None:
        super().__init__(name=name, parent=parent, owner=owner, group=group, mode=mode)
        self.children: dict[str, VirtualNode] = {}

    def add_child(self, node: VirtualNode) -> None:
        if node.name in self.children:
            raise NodeExists(f"'{self.path().joinpath(node.name)}' already exists")
        node.parent = self
        self.children[node.name] = node

    def remove_child(self, name: str) -> VirtualNode:
        try:
            node = self.children.pop(name)
        except KeyError as exc:
            raise NodeNotFound(f"'{self.path().joinpath(name)}': No such file or directory") from exc
        node.parent = None
        return node

    def get_child(self, name: str) -> VirtualNode:
        try:
            return self.children[name]
        except KeyError as exc:
            raise NodeNotFound(f"'{self.path().joinpath(name)}': No such file or directory") from exc

    def iter_children(self) -> Iterator[VirtualNode]:
        return iter(self.children.values())


__all__ = [
    "NodeType",
    "VirtualNode",
    "VirtualFile",
    "VirtualDirectory",
]
