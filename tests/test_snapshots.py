import pytest

from vshell import MemoryStorageBackend, Shell, VirtualFileSystem
from vshell.adapters import JsonFileBackend, StorageBackend
from vshell.config import ShellConfig
from vshell.exceptions import ErrorKind, StorageError
from vshell.users import UserRegistry


def setup_tree() -> VirtualFileSystem:
    vfs = VirtualFileSystem(UserRegistry("alice"), backend=MemoryStorageBackend())
    vfs.initialize("alice")
    vfs.write_file("/notes/a.txt", "hello")
    vfs.write_file("/notes/deep/b.txt", "world")
    vfs.chmod("/notes/a.txt", "rw-------")
    vfs.chown("/notes/a.txt", "alice")
    return vfs


def test_serialize_round_trip_is_deep_equal():
    vfs = setup_tree()
    snapshot = vfs.serialize()
    restored = VirtualFileSystem()
    restored.deserialize(snapshot)
    assert restored.serialize() == snapshot
    node = restored.get_node("/notes/a.txt")
    assert node.owner == "alice"
    assert node.permissions == "rw-------"
    assert restored.pwd() == "/home/alice"


def test_snapshot_restore_discards_later_changes():
    vfs = setup_tree()
    snap = vfs.serialize()
    vfs.write_file("/notes/a.txt", "boom")
    vfs.remove("/notes/deep", recursive=True)
    vfs.deserialize(snap)
    assert vfs.read_file("/notes/a.txt") == "hello"
    assert vfs.read_file("/notes/deep/b.txt") == "world"


@pytest.mark.parametrize(
    "snapshot",
    [
        {},
        {"root": "nope"},
        {"root": {"name": "", "type": "f", "owner": "root", "group": "root",
                  "permissions": "rw-r--r--", "ctime": 0, "mtime": 0, "content": ""}},
        {"root": {"name": "", "type": "d", "owner": "root", "group": "root",
                  "permissions": "bogus", "ctime": 0, "mtime": 0, "children": {}}},
    ],
)
def test_deserialize_rejects_corrupt_snapshots(snapshot):
    vfs = VirtualFileSystem()
    with pytest.raises(StorageError):
        vfs.deserialize(snapshot)


def test_persistence_manager_save_and_load():
    backend = MemoryStorageBackend()
    vfs = VirtualFileSystem(backend=backend)
    vfs.write_file("/data.txt", "persisted")
    assert vfs.save().success
    assert backend.saves == 1

    other = VirtualFileSystem(backend=backend)
    loaded = other.load()
    assert loaded.success and loaded.data is True
    assert other.read_file("/data.txt") == "persisted"


def test_load_from_empty_backend_reports_nothing_loaded():
    vfs = VirtualFileSystem(backend=MemoryStorageBackend())
    loaded = vfs.load()
    assert loaded.success
    assert loaded.data is False
    assert not VirtualFileSystem().persistence.attached


class RejectingBackend(StorageBackend):
    def save(self, snapshot):
        return False

    def load(self):
        raise StorageError("unreadable")

    def clear(self):
        pass


def test_backend_failures_become_system_results():
    vfs = VirtualFileSystem(backend=RejectingBackend())
    saved = vfs.save()
    assert not saved.success
    assert saved.kind is ErrorKind.SYSTEM
    loaded = vfs.load()
    assert not loaded.success
    assert "unreadable" in loaded.error


@pytest.mark.asyncio
async def test_shell_reloads_state_from_storage_path(tmp_path):
    config = ShellConfig(default_user="alice", storage_path=tmp_path / "fs.json")
    first = Shell(config=config)
    result = await first.execute("echo remembered > note.txt")
    assert result.success
    assert JsonFileBackend(config.storage_path).load() is not None

    second = Shell(config=config)
    assert second.vfs.read_file("/home/alice/note.txt") == "remembered\n"


@pytest.mark.asyncio
async def test_mutating_commands_save_automatically():
    backend = MemoryStorageBackend()
    shell = Shell(backend=backend)
    await shell.execute("mkdir projects")
    assert backend.saves == 1
    await shell.execute("pwd")
    assert backend.saves == 1
    saved = await shell.execute("save")
    assert saved.data == "File system saved.\n"
    assert backend.saves == 2
