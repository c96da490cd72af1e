"""Virtual filesystem implementation."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Any

from .adapters import Snapshot, StorageBackend
from .exceptions import (
    InvalidOperation,
    NodeExists,
    NodeNotFound,
    PermissionDenied,
    StorageError,
    ValidationError,
)
from .managers import PersistenceManager
from .nodes import NodeType, VirtualDirectory, VirtualFile, VirtualNode
from .path_utils import ROOT, PathResolverMixin, check_name
from .permissions import (
    DEFAULT_DIR_MODE,
    DEFAULT_FILE_MODE,
    PRIVATE_DIR_MODE,
    Permission,
    PermissionChecker,
    parse_mode,
)
from .result import Result, returns_result
from .users import ROOT_USER, UserRegistry

logger = logging.getLogger(__name__)


@dataclass
class DirEntry:
    name: str
    path: PurePosixPath
    is_dir: bool
    owner: str
    group: str
    permissions: str
    size: int
    mtime: float


class VirtualFileSystem(PathResolverMixin):
    """In-memory tree with owner/group/mode permissions.

    Methods without a ``Result`` return type raise :class:`ShellError`
    subclasses; the Result-returning operations (``resolve``, ``create``,
    ``rename``, ``delete``, ``set_owner``, ``set_group``, ``set_mode``,
    ``access``, ``save``, ``load``) translate them into ``Result`` values.
    """

    def __init__(
        self,
        users: UserRegistry | None = None,
        *,
        backend: StorageBackend | None = None,
    ) -> None:
        self.users = users or UserRegistry()
        self.checker = PermissionChecker(self.users)
        self.root = VirtualDirectory(name="")
        self.cwd = self.root
        self.persistence = PersistenceManager(self, backend)

    def initialize(self, username: str | None = None) -> None:
        """Reset to ``/`` + ``/home`` and a private home for ``username``."""
        self.root = VirtualDirectory(name="")
        self.cwd = self.root
        home = VirtualDirectory(name="home")
        self.root.add_child(home)
        if username and username != ROOT_USER:
            user_home = VirtualDirectory(
                name=username,
                owner=username,
                group=self.users.primary_group(username),
                mode=PRIVATE_DIR_MODE,
            )
            home.add_child(user_home)
            self.cwd = user_home

    # ------------------------------------------------------------------
    # Permission helpers
    # ------------------------------------------------------------------
    def has_permission(self, node: VirtualNode, user: str, permission: Permission) -> bool:
        return self.checker.allows(node, user, permission)

    def can_modify(self, node: VirtualNode, user: str) -> bool:
        return self.checker.can_modify(node, user)

    def _require(self, node: VirtualNode, user: str, *permissions: Permission) -> None:
        for permission in permissions:
            if not self.checker.allows(node, user, permission):
                raise PermissionDenied(f"'{node.path()}': Permission denied")

    def check_access(self, node: VirtualNode, user: str, *permissions: Permission) -> None:
        self._require(node, user, *permissions)

    def _require_owner(self, node: VirtualNode, user: str, action: str) -> None:
        if not self.checker.can_modify(node, user):
            raise PermissionDenied(f"changing {action} of '{node.path()}': Operation not permitted")

    def _stamp(self, node: VirtualNode) -> None:
        now = time.time()
        node.touch(now)
        if node.parent is not None:
            node.parent.touch(now)

    # ------------------------------------------------------------------
    # Result-returning operations
    # ------------------------------------------------------------------
    @returns_result
    def resolve(self, path: str | PurePosixPath) -> VirtualNode:
        return self._resolve_node(path)

    @returns_result
    def access(self, path: str | PurePosixPath, user: str, permission: Permission) -> VirtualNode:
        node = self._resolve_node(path)
        self._require(node, user, permission)
        return node

    @returns_result
    def create(
        self,
        path: str | PurePosixPath,
        *,
        is_directory: bool = False,
        content: str = "",
        owner: str | None = None,
        group: str | None = None,
        user: str = ROOT_USER,
        parents: bool = False,
    ) -> VirtualNode:
        if is_directory:
            node: VirtualNode = self.mkdir(path, user=user, parents=parents)
        else:
            node = self.make_file(path, content, user=user, parents=parents)
        if owner is not None:
            node.owner = owner
        if group is not None:
            node.group = group
        return node

    @returns_result
    def rename(self, source: str | PurePosixPath, target: str | PurePosixPath, *, user: str = ROOT_USER) -> VirtualNode:
        return self.move(source, target, user=user)

    @returns_result
    def delete(self, path: str | PurePosixPath, *, user: str = ROOT_USER, recursive: bool = False) -> None:
        self.remove(path, user=user, recursive=recursive)

    @returns_result
    def set_owner(self, path: str | PurePosixPath, owner: str, *, user: str = ROOT_USER) -> VirtualNode:
        return self.chown(path, owner, user=user)

    @returns_result
    def set_group(self, path: str | PurePosixPath, group: str, *, user: str = ROOT_USER) -> VirtualNode:
        return self.chgrp(path, group, user=user)

    @returns_result
    def set_mode(self, path: str | PurePosixPath, mode: int | str, *, user: str = ROOT_USER) -> VirtualNode:
        return self.chmod(path, mode, user=user)

    def save(self) -> Result[None]:
        return self.persistence.save()

    def load(self) -> Result[bool]:
        return self.persistence.load()

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------
    def pwd(self) -> str:
        return str(self.cwd.path())

    def cd(self, path: str | PurePosixPath, *, user: str = ROOT_USER) -> str:
        directory = self._resolve_dir(path)
        self._require(directory, user, Permission.EXECUTE)
        self.cwd = directory
        return self.pwd()

    def normalize(self, path: str | PurePosixPath) -> PurePosixPath:
        return self._normalize(path)

    def get_node(self, path: str | PurePosixPath) -> VirtualNode:
        return self._resolve_node(path)

    def exists(self, path: str | PurePosixPath) -> bool:
        try:
            self._resolve_node(path)
            return True
        except ValidationError:
            return False

    def is_dir(self, path: str | PurePosixPath) -> bool:
        try:
            return isinstance(self._resolve_node(path), VirtualDirectory)
        except ValidationError:
            return False

    def is_file(self, path: str | PurePosixPath) -> bool:
        try:
            return isinstance(self._resolve_node(path), VirtualFile)
        except ValidationError:
            return False

    def ls(
        self,
        path: str | PurePosixPath | None = None,
        *,
        user: str = ROOT_USER,
        show_hidden: bool = False,
    ) -> list[DirEntry]:
        node = self._resolve_node(path or self.cwd.path())
        if isinstance(node, VirtualFile):
            return [self._entry(node)]
        assert isinstance(node, VirtualDirectory)
        self._require(node, user, Permission.EXECUTE)
        entries = [
            self._entry(child)
            for child in node.iter_children()
            if show_hidden or not child.name.startswith(".")
        ]
        entries.sort(key=lambda entry: entry.name)
        return entries

    def _entry(self, node: VirtualNode) -> DirEntry:
        size = len(node.content) if isinstance(node, VirtualFile) else 0
        return DirEntry(
            name=node.name or "/",
            path=node.path(),
            is_dir=node.is_dir(),
            owner=node.owner,
            group=node.group,
            permissions=node.permissions,
            size=size,
            mtime=node.mtime,
        )

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------
    def _ensure_parent(self, path: PurePosixPath, *, user: str, parents: bool) -> VirtualDirectory:
        existing, missing = self._nearest_existing(path)
        if missing and not parents:
            raise NodeNotFound(f"'{path}': No such file or directory")
        if not missing:
            return existing
        for name in missing:
            check_name(name)
        self._require(existing, user, Permission.WRITE)
        current = existing
        for name in missing:
            created = VirtualDirectory(
                name=name,
                owner=user,
                group=self.users.primary_group(user),
                mode=DEFAULT_DIR_MODE,
            )
            current.add_child(created)
            self._stamp(created)
            current = created
        return current

    def ensure_directory(self, path: str | PurePosixPath, *, user: str = ROOT_USER) -> VirtualDirectory:
        """Return the directory at ``path``, creating missing ancestors as ``user``."""
        return self._ensure_parent(self._normalize(path), user=user, parents=True)

    def mkdir(
        self,
        path: str | PurePosixPath,
        *,
        user: str = ROOT_USER,
        parents: bool = False,
        exist_ok: bool = False,
    ) -> VirtualDirectory:
        parent_path, name = self._split_parent(path)
        check_name(name)
        parent = self._ensure_parent(parent_path, user=user, parents=parents)
        existing = parent.children.get(name)
        if existing is not None:
            if isinstance(existing, VirtualDirectory) and exist_ok:
                return existing
            raise NodeExists(f"cannot create directory '{existing.path()}': File exists")
        self._require(parent, user, Permission.WRITE)
        node = VirtualDirectory(
            name=name,
            owner=user,
            group=self.users.primary_group(user),
            mode=DEFAULT_DIR_MODE,
        )
        parent.add_child(node)
        self._stamp(node)
        return node

    def make_file(
        self,
        path: str | PurePosixPath,
        content: str = "",
        *,
        user: str = ROOT_USER,
        parents: bool = False,
    ) -> VirtualFile:
        parent_path, name = self._split_parent(path)
        check_name(name)
        parent = self._ensure_parent(parent_path, user=user, parents=parents)
        if name in parent.children:
            raise NodeExists(f"'{parent.children[name].path()}' already exists")
        self._require(parent, user, Permission.WRITE)
        node = VirtualFile(
            name=name,
            content=content,
            owner=user,
            group=self.users.primary_group(user),
            mode=DEFAULT_FILE_MODE,
        )
        parent.add_child(node)
        self._stamp(node)
        return node

    # ------------------------------------------------------------------
    # File content
    # ------------------------------------------------------------------
    def read_file(self, path: str | PurePosixPath, *, user: str = ROOT_USER) -> str:
        node = self._resolve_node(path)
        if not isinstance(node, VirtualFile):
            raise InvalidOperation(f"'{node.path()}': Is a directory")
        self._require(node, user, Permission.READ)
        return node.read()

    def write_file(
        self,
        path: str | PurePosixPath,
        data: str,
        *,
        user: str = ROOT_USER,
        append: bool = False,
        parents: bool = True,
    ) -> VirtualFile:
        try:
            node = self._resolve_node(path)
        except NodeNotFound:
            return self.make_file(path, data, user=user, parents=parents)
        if not isinstance(node, VirtualFile):
            raise InvalidOperation(f"'{node.path()}': Is a directory")
        self._require(node, user, Permission.WRITE)
        node.write(data, append=append)
        self._stamp(node)
        return node

    def append_file(self, path: str | PurePosixPath, data: str, *, user: str = ROOT_USER) -> VirtualFile:
        return self.write_file(path, data, user=user, append=True)

    def touch(self, path: str | PurePosixPath, *, user: str = ROOT_USER) -> VirtualNode:
        try:
            node = self._resolve_node(path)
        except NodeNotFound:
            return self.make_file(path, "", user=user)
        self._require(node, user, Permission.WRITE)
        self._stamp(node)
        return node

    # ------------------------------------------------------------------
    # Structural mutation
    # ------------------------------------------------------------------
    def _check_removable(self, directory: VirtualDirectory, user: str) -> None:
        self._require(directory, user, Permission.WRITE)
        for child in directory.iter_children():
            if isinstance(child, VirtualDirectory):
                self._check_removable(child, user)

    def remove(self, path: str | PurePosixPath, *, user: str = ROOT_USER, recursive: bool = False) -> None:
        target = self._normalize(path)
        if target == ROOT:
            raise InvalidOperation("cannot remove root directory")
        node = self._resolve_node(target)
        parent = node.parent
        if parent is None:
            raise InvalidOperation("cannot remove node without parent")
        self._require(parent, user, Permission.WRITE)
        if isinstance(node, VirtualDirectory) and node.children:
            if not recursive:
                raise InvalidOperation(f"cannot remove '{target}': Directory not empty")
            self._check_removable(node, user)
        if self.cwd is node or str(self.cwd.path()).startswith(f"{target}/"):
            self.cwd = parent
        parent.remove_child(node.name)
        parent.touch()

    def move(self, source: str | PurePosixPath, target: str | PurePosixPath, *, user: str = ROOT_USER) -> VirtualNode:
        src_path = self._normalize(source)
        if src_path == ROOT:
            raise InvalidOperation("cannot move root directory")
        node = self._resolve_node(src_path)
        parent = node.parent
        if parent is None:
            raise InvalidOperation("cannot move node without parent")
        self._require(parent, user, Permission.WRITE)

        dest_path = self._normalize(target)
        try:
            dest_node = self._resolve_node(dest_path)
        except NodeNotFound:
            dest_parent = self._resolve_dir(dest_path.parent)
            dest_name = check_name(dest_path.name)
        else:
            if not isinstance(dest_node, VirtualDirectory):
                raise NodeExists(f"'{dest_path}' already exists")
            dest_parent = dest_node
            dest_name = node.name
            if dest_name in dest_parent.children:
                raise NodeExists(f"'{dest_parent.children[dest_name].path()}' already exists")
        self._require(dest_parent, user, Permission.WRITE)

        if isinstance(node, VirtualDirectory):
            dest_parent_path = dest_parent.path()
            if dest_parent_path == src_path or src_path in dest_parent_path.parents:
                raise InvalidOperation(f"cannot move '{src_path}' inside itself")

        if dest_parent is parent and dest_name == node.name:
            return node
        parent.remove_child(node.name)
        parent.touch()
        node.name = dest_name
        dest_parent.add_child(node)
        self._stamp(node)
        return node

    def copy(
        self,
        source: str | PurePosixPath,
        target: str | PurePosixPath,
        *,
        user: str = ROOT_USER,
        recursive: bool = False,
    ) -> VirtualNode:
        src_path = self._normalize(source)
        node = self._resolve_node(src_path)
        if isinstance(node, VirtualDirectory) and not recursive:
            raise InvalidOperation(f"-r not specified; omitting directory '{src_path}'")

        dest_path = self._normalize(target)
        try:
            dest_node = self._resolve_node(dest_path)
        except NodeNotFound:
            dest_parent = self._resolve_dir(dest_path.parent)
            dest_name = check_name(dest_path.name)
        else:
            if isinstance(dest_node, VirtualDirectory):
                dest_parent = dest_node
                dest_name = node.name
            elif isinstance(node, VirtualFile):
                self._require(node, user, Permission.READ)
                self._require(dest_node, user, Permission.WRITE)
                dest_node.write(node.read())
                self._stamp(dest_node)
                return dest_node
            else:
                raise InvalidOperation(f"cannot overwrite non-directory '{dest_path}' with directory")
        self._require(dest_parent, user, Permission.WRITE)
        if dest_name in dest_parent.children:
            raise NodeExists(f"'{dest_parent.children[dest_name].path()}' already exists")
        if isinstance(node, VirtualDirectory):
            dest_full = dest_parent.path().joinpath(dest_name)
            if dest_full == src_path or src_path in dest_full.parents:
                raise InvalidOperation(f"cannot copy '{src_path}' into itself")

        clone = self._clone_node(node, user=user)
        clone.name = dest_name
        dest_parent.add_child(clone)
        self._stamp(clone)
        return clone

    def _clone_node(self, node: VirtualNode, *, user: str) -> VirtualNode:
        self._require(node, user, Permission.READ)
        group = self.users.primary_group(user)
        if isinstance(node, VirtualFile):
            return VirtualFile(node.name, content=node.read(), owner=user, group=group, mode=node.mode)
        assert isinstance(node, VirtualDirectory)
        clone = VirtualDirectory(node.name, owner=user, group=group, mode=node.mode)
        for child in node.iter_children():
            clone.add_child(self._clone_node(child, user=user))
        return clone

    # ------------------------------------------------------------------
    # Ownership and mode
    # ------------------------------------------------------------------
    def chown(self, path: str | PurePosixPath, owner: str, *, user: str = ROOT_USER) -> VirtualNode:
        node = self._resolve_node(path)
        if user != ROOT_USER:
            raise PermissionDenied(f"changing ownership of '{node.path()}': Operation not permitted")
        if not self.users.has_user(owner):
            raise ValidationError(f"invalid user: '{owner}'")
        node.owner = owner
        self._stamp(node)
        return node

    def chgrp(self, path: str | PurePosixPath, group: str, *, user: str = ROOT_USER) -> VirtualNode:
        node = self._resolve_node(path)
        self._require_owner(node, user, "group")
        if not self.users.has_group(group):
            raise ValidationError(f"invalid group: '{group}'")
        node.group = group
        self._stamp(node)
        return node

    def chmod(self, path: str | PurePosixPath, mode: int | str, *, user: str = ROOT_USER) -> VirtualNode:
        node = self._resolve_node(path)
        self._require_owner(node, user, "permissions")
        value = parse_mode(mode) if isinstance(mode, str) else mode
        if not 0 <= value <= 0o777:
            raise ValidationError(f"invalid mode: '{oct(value)}'")
        node.mode = value
        self._stamp(node)
        return node

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------
    def walk(
        self,
        path: str | PurePosixPath | None = None,
    ) -> Iterator[tuple[PurePosixPath, VirtualNode]]:
        start_node = self._resolve_node(path or self.cwd.path())

        def _walk(node: VirtualNode) -> Iterator[tuple[PurePosixPath, VirtualNode]]:
            yield (node.path(), node)
            if isinstance(node, VirtualDirectory):
                for name in sorted(node.children):
                    yield from _walk(node.children[name])

        return _walk(start_node)

    def tree(self, path: str | PurePosixPath | None = None, *, user: str = ROOT_USER) -> str:
        root_dir = self._resolve_dir(path or self.cwd.path())
        self._require(root_dir, user, Permission.EXECUTE)
        lines: list[str] = []

        def render(directory: VirtualDirectory, prefix: str = "") -> None:
            entries = sorted(directory.iter_children(), key=lambda node: node.name)
            for idx, node in enumerate(entries):
                last = idx == len(entries) - 1
                connector = "└──" if last else "├──"
                suffix = "/" if isinstance(node, VirtualDirectory) else ""
                lines.append(f"{prefix}{connector} {node.name}{suffix}")
                if isinstance(node, VirtualDirectory) and self.checker.allows(node, user, Permission.EXECUTE):
                    render(node, prefix + ("    " if last else "│   "))

        render(root_dir)
        return "\n".join([str(root_dir.path())] + lines)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def serialize(self) -> Snapshot:
        def dump(node: VirtualNode) -> dict[str, Any]:
            data: dict[str, Any] = {
                "name": node.name,
                "type": node.node_type.value,
                "owner": node.owner,
                "group": node.group,
                "permissions": node.permissions,
                "ctime": node.ctime,
                "mtime": node.mtime,
            }
            if isinstance(node, VirtualFile):
                data["content"] = node.content
            elif isinstance(node, VirtualDirectory):
                data["children"] = {name: dump(child) for name, child in node.children.items()}
            return data

        return {"root": dump(self.root), "cwd": self.pwd()}

    def deserialize(self, snapshot: Snapshot) -> None:
        """Replace the tree with ``snapshot``; raises ``StorageError`` when corrupted."""

        def build(name: str, data: Any) -> VirtualNode:
            if not isinstance(data, dict):
                raise StorageError(f"corrupted snapshot entry for '{name}'")
            try:
                kind = NodeType(data["type"])
                mode = parse_mode(data["permissions"])
                owner, group = str(data["owner"]), str(data["group"])
                ctime, mtime = float(data["ctime"]), float(data["mtime"])
            except (KeyError, TypeError, ValueError, ValidationError) as exc:
                raise StorageError(f"corrupted snapshot entry for '{name}': {exc}") from exc
            node: VirtualNode
            if kind is NodeType.FILE:
                if "children" in data:
                    raise StorageError(f"file '{name}' cannot hold children")
                node = VirtualFile(name, content=str(data.get("content", "")), owner=owner, group=group, mode=mode)
            else:
                if "content" in data:
                    raise StorageError(f"directory '{name}' cannot hold content")
                node = VirtualDirectory(name, owner=owner, group=group, mode=mode)
                children = data.get("children", {})
                if not isinstance(children, dict):
                    raise StorageError(f"corrupted children for '{name}'")
                for child_name, child_data in children.items():
                    node.add_child(build(child_name, child_data))
            node.ctime, node.mtime = ctime, mtime
            return node

        root = build("", snapshot.get("root"))
        if not isinstance(root, VirtualDirectory):
            raise StorageError("snapshot root must be a directory")
        root.name = ""
        self.root = root
        self.cwd = root
        cwd = snapshot.get("cwd")
        if isinstance(cwd, str) and self.is_dir(cwd):
            self.cwd = self._resolve_dir(cwd)


__all__ = ["VirtualFileSystem", "DirEntry"]
