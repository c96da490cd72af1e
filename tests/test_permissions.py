import pytest

from vshell.exceptions import ErrorKind, ExecutionError, ValidationError
from vshell.permissions import Permission, mode_to_string, parse_mode
from vshell.users import ROOT_USER, UserRegistry
from vshell.vfs import VirtualFileSystem


def setup_vfs() -> VirtualFileSystem:
    users = UserRegistry("alice")
    users.add_user("bob")
    vfs = VirtualFileSystem(users)
    vfs.initialize("alice")
    vfs.write_file("/home/alice/secret.txt", "s3cret", user="alice")
    vfs.chmod("/home/alice/secret.txt", "rwx------", user="alice")
    return vfs


def test_mode_round_trip():
    assert mode_to_string(0o750) == "rwxr-x---"
    assert parse_mode("rwxr-x---") == 0o750
    assert parse_mode("644") == 0o644
    assert parse_mode("0755") == 0o755
    with pytest.raises(ValidationError):
        parse_mode("rwz------")


def test_home_directory_is_private():
    vfs = setup_vfs()
    home = vfs.get_node("/home/alice")
    assert home.owner == "alice"
    assert home.permissions == "rwx------"
    assert vfs.pwd() == "/home/alice"


@pytest.mark.parametrize("permission", list(Permission))
def test_other_user_denied(permission):
    vfs = setup_vfs()
    result = vfs.access("/home/alice/secret.txt", "bob", permission)
    assert not result.success
    assert result.kind is ErrorKind.VALIDATION
    assert "Permission denied" in result.error


def test_owner_and_root_allowed():
    vfs = setup_vfs()
    for permission in Permission:
        assert vfs.access("/home/alice/secret.txt", "alice", permission).success
        assert vfs.access("/home/alice/secret.txt", ROOT_USER, permission).success


def test_group_triplet_applies_to_members():
    vfs = setup_vfs()
    vfs.users.add_group("staff")
    vfs.users.add_to_group("bob", "staff")
    vfs.chgrp("/home/alice/secret.txt", "staff", user="alice")
    vfs.chmod("/home/alice/secret.txt", "rw-r-----", user="alice")
    assert vfs.access("/home/alice/secret.txt", "bob", Permission.READ).success
    assert not vfs.access("/home/alice/secret.txt", "bob", Permission.WRITE).success


def test_bob_cannot_read_or_create_in_alice_home():
    vfs = setup_vfs()
    with pytest.raises(ValidationError, match="Permission denied"):
        vfs.read_file("/home/alice/secret.txt", user="bob")
    result = vfs.create("/home/alice/new.txt", user="bob")
    assert not result.success
    assert "Permission denied" in result.error


def test_mode_change_requires_ownership():
    vfs = setup_vfs()
    result = vfs.set_mode("/home/alice/secret.txt", 0o777, user="bob")
    assert not result.success
    assert "Operation not permitted" in result.error
    assert vfs.set_mode("/home/alice/secret.txt", 0o640, user="alice").success


def test_owner_change_is_root_only():
    vfs = setup_vfs()
    denied = vfs.set_owner("/home/alice/secret.txt", "bob", user="alice")
    assert not denied.success
    assert "Operation not permitted" in denied.error
    assert vfs.set_owner("/home/alice/secret.txt", "bob").success
    assert vfs.get_node("/home/alice/secret.txt").owner == "bob"


def test_user_registry_rules():
    users = UserRegistry("alice")
    assert users.has_user(ROOT_USER) and users.has_user("alice")
    assert users.primary_group("alice") == "alice"
    with pytest.raises(ExecutionError):
        users.add_user("alice")
    users.add_user("carol", password="pw")
    assert users.check_password("carol", "pw")
    assert not users.check_password("carol", "nope")
    assert users.check_password("alice", None)
    assert users.groups_for("carol") == ["carol"]
