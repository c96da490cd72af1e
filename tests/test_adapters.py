import pytest

from vshell.adapters import JsonFileBackend, MemoryStorageBackend
from vshell.exceptions import StorageError


def test_memory_backend_keeps_independent_copies():
    backend = MemoryStorageBackend(initial={"root": {"name": ""}})
    snapshot = backend.load()
    snapshot["root"]["name"] = "changed"
    assert backend.load() == {"root": {"name": ""}}

    data = {"root": {"children": {}}}
    assert backend.save(data)
    data["root"]["children"]["x"] = {}
    assert backend.load() == {"root": {"children": {}}}
    assert backend.saves == 1


def test_memory_backend_clear():
    backend = MemoryStorageBackend()
    assert backend.load() is None
    backend.save({"root": {}})
    backend.clear()
    assert backend.load() is None


def test_json_backend_round_trip(tmp_path):
    backend = JsonFileBackend(tmp_path / "state" / "fs.json")
    assert backend.load() is None
    assert backend.save({"root": {"name": "", "children": {}}, "cwd": "/"})
    assert backend.path.exists()
    assert not backend.path.with_name("fs.json.tmp").exists()
    assert backend.load() == {"root": {"name": "", "children": {}}, "cwd": "/"}
    backend.clear()
    assert not backend.path.exists()
    backend.clear()


@pytest.mark.parametrize("payload", ["{not json", "[1, 2, 3]"])
def test_json_backend_rejects_corrupt_files(tmp_path, payload):
    path = tmp_path / "fs.json"
    path.write_text(payload)
    with pytest.raises(StorageError):
        JsonFileBackend(path).load()
