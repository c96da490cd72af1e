import pytest

from vshell import VirtualFileSystem
from vshell.exceptions import ErrorKind, InvalidOperation, NodeExists, NodeNotFound
from vshell.nodes import VirtualDirectory, VirtualFile
from vshell.path_utils import check_name


def test_write_and_read_file():
    vfs = VirtualFileSystem()
    vfs.write_file("/notes/todo.txt", "- build VFS\n")
    assert vfs.read_file("/notes/todo.txt") == "- build VFS\n"
    entries = vfs.ls("/notes")
    assert entries[0].name == "todo.txt"
    assert entries[0].permissions == "rw-r--r--"


@pytest.mark.parametrize(
    "path, expected",
    [
        ("/a/./b/../c", "/a/c"),
        ("/../../a", "/a"),
        ("//a//b/", "/a/b"),
        ("/", "/"),
    ],
)
def test_resolution_normalizes(path, expected):
    vfs = VirtualFileSystem()
    vfs.mkdir("/a/b", parents=True)
    vfs.mkdir("/a/c")
    assert str(vfs.normalize(path)) == expected


def test_resolution_is_idempotent():
    vfs = VirtualFileSystem()
    vfs.write_file("/x/y/z.txt", "z")
    vfs.cd("/x")
    for raw in ["y/../y/z.txt", "./y/z.txt", "/x/y/z.txt", "../x/y"]:
        once = vfs.resolve(raw)
        assert once.success
        again = vfs.resolve(str(once.data.path()))
        assert again.data is once.data


def test_resolve_missing_is_validation_error():
    vfs = VirtualFileSystem()
    result = vfs.resolve("/nope")
    assert not result.success
    assert result.kind is ErrorKind.VALIDATION
    assert "No such file or directory" in result.error


def test_relative_paths_use_cwd():
    vfs = VirtualFileSystem()
    vfs.mkdir("/work")
    vfs.cd("/work")
    vfs.write_file("notes.txt", "hi")
    assert vfs.is_file("/work/notes.txt")
    assert vfs.pwd() == "/work"


def test_create_requires_parents_flag():
    vfs = VirtualFileSystem()
    missing = vfs.create("/deep/er/file.txt", content="x")
    assert not missing.success
    created = vfs.create("/deep/er/file.txt", content="x", parents=True)
    assert created.success
    assert isinstance(created.data, VirtualFile)
    assert vfs.read_file("/deep/er/file.txt") == "x"
    folder = vfs.create("/deep/dir", is_directory=True, owner="someone")
    assert isinstance(folder.data, VirtualDirectory)
    assert folder.data.owner == "someone"


@pytest.mark.parametrize("name", [".", "..", "", "a/b"])
def test_reserved_names_rejected(name):
    with pytest.raises(InvalidOperation):
        check_name(name)


def test_root_cannot_be_created():
    vfs = VirtualFileSystem()
    with pytest.raises(InvalidOperation):
        vfs.mkdir("/")


def test_mkdir_conflicts():
    vfs = VirtualFileSystem()
    vfs.mkdir("/tmp")
    with pytest.raises(NodeExists):
        vfs.mkdir("/tmp")
    assert vfs.mkdir("/tmp", exist_ok=True) is vfs.get_node("/tmp")


def test_file_is_not_traversable():
    vfs = VirtualFileSystem()
    vfs.write_file("/f.txt", "x")
    with pytest.raises(InvalidOperation):
        vfs.get_node("/f.txt/child")


def test_mutations_touch_node_and_parent():
    vfs = VirtualFileSystem()
    vfs.mkdir("/dir")
    parent = vfs.get_node("/dir")
    parent.mtime = 0
    node = vfs.write_file("/dir/a.txt", "1")
    assert parent.mtime > 0
    node.mtime = 0
    parent.mtime = 0
    vfs.write_file("/dir/a.txt", "2")
    assert node.mtime > 0
    assert parent.mtime > 0


def test_rename_and_delete():
    vfs = VirtualFileSystem()
    vfs.write_file("/a/one.txt", "1")
    assert vfs.rename("/a/one.txt", "/a/two.txt").success
    assert vfs.read_file("/a/two.txt") == "1"
    assert not vfs.exists("/a/one.txt")
    not_empty = vfs.delete("/a")
    assert not not_empty.success
    assert "not empty" in not_empty.error
    assert vfs.delete("/a", recursive=True).success
    assert not vfs.exists("/a")
    assert not vfs.delete("/").success


def test_move_into_directory_and_not_into_itself():
    vfs = VirtualFileSystem()
    vfs.write_file("/src/file.txt", "x")
    vfs.mkdir("/dst")
    vfs.move("/src/file.txt", "/dst")
    assert vfs.read_file("/dst/file.txt") == "x"
    with pytest.raises(InvalidOperation):
        vfs.move("/src", "/src/inner")


def test_copy_tree():
    vfs = VirtualFileSystem()
    vfs.write_file("/src/a/b.txt", "b")
    with pytest.raises(InvalidOperation):
        vfs.copy("/src", "/copy")
    vfs.copy("/src", "/copy", recursive=True)
    assert vfs.read_file("/copy/a/b.txt") == "b"
    vfs.write_file("/copy/a/b.txt", "changed")
    assert vfs.read_file("/src/a/b.txt") == "b"


def test_remove_moves_cwd_out_of_deleted_tree():
    vfs = VirtualFileSystem()
    vfs.mkdir("/a/b", parents=True)
    vfs.cd("/a/b")
    vfs.remove("/a", recursive=True)
    assert vfs.pwd() == "/"


def test_missing_remove_raises():
    vfs = VirtualFileSystem()
    with pytest.raises(NodeNotFound):
        vfs.remove("/ghost")


def test_tree_representation():
    vfs = VirtualFileSystem()
    vfs.write_file("/a/b/c.txt", "data")
    tree = vfs.tree("/a")
    assert tree.splitlines()[0] == "/a"
    assert "c.txt" in tree
    assert "b/" in tree


def test_walk_visits_sorted_paths():
    vfs = VirtualFileSystem()
    vfs.write_file("/w/b.txt", "")
    vfs.write_file("/w/a/x.txt", "")
    paths = [str(path) for path, _ in vfs.walk("/w")]
    assert paths == ["/w", "/w/a", "/w/a/x.txt", "/w/b.txt"]
