import pytest

from vshell import Shell
from vshell.exceptions import ErrorKind


def setup_shell() -> Shell:
    shell = Shell()
    shell.vfs.write_file("/workspace/app.py", "print('hi')\n")
    shell.vfs.write_file("/workspace/README.md", "hello world\nsecond line\n")
    return shell


@pytest.mark.asyncio
async def test_ls_and_cd():
    shell = setup_shell()
    result = await shell.execute("ls /workspace")
    assert result.data == "README.md  app.py\n"
    await shell.execute("cd /workspace")
    assert (await shell.execute("pwd")).data == "/workspace\n"
    missing = await shell.execute("cd /nope")
    assert missing.error == "cd: '/nope': No such file or directory"
    assert missing.kind is ErrorKind.VALIDATION


@pytest.mark.asyncio
async def test_starts_in_private_home():
    shell = setup_shell()
    assert shell.user == "Guest"
    assert shell.prompt() == "Guest@localhost:/home/Guest$ "
    listing = await shell.execute("ls -l /home")
    assert listing.data.startswith("drwx------ Guest Guest")


@pytest.mark.asyncio
async def test_pipeline_threads_stdout_into_stdin():
    shell = setup_shell()
    assert (await shell.execute("echo hello | wc -w")).data == "1\n"
    result = await shell.execute("cat /workspace/README.md | grep -n second | wc -l")
    assert result.data == "1\n"
    grep = await shell.execute("grep -n second /workspace/README.md")
    assert grep.data == "2:second line\n"


@pytest.mark.asyncio
async def test_stdin_only_reaches_consuming_commands():
    shell = setup_shell()
    result = await shell.execute("echo ignored | echo shown")
    assert result.data == "shown\n"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "line, output, success",
    [
        ("true && echo ok", "ok\n", True),
        ("false && echo no", "", False),
        ("false || echo yes", "yes\n", True),
        ("true || echo skipped", "", True),
        ("echo a; echo b", "a\nb\n", True),
        ("false; echo x", "", False),
        ("false && echo a || echo b", "b\n", True),
    ],
)
async def test_sequence_operators(line, output, success):
    shell = setup_shell()
    result = await shell.execute(line)
    assert result.data == output
    assert result.success is success


@pytest.mark.asyncio
async def test_failure_is_reported_before_next_pipeline():
    shell = setup_shell()
    result = await shell.execute("nope || echo recovered")
    assert result.data == "recovered\n"
    assert shell.console.drain() == ["nope: command not found"]


@pytest.mark.asyncio
async def test_sequence_stops_on_failure_with_error():
    shell = setup_shell()
    result = await shell.execute("cat /missing.txt; echo after")
    assert not result.success
    assert result.data == ""
    assert result.error == "cat: '/missing.txt': No such file or directory"
    assert result.exit_code == 1


@pytest.mark.asyncio
async def test_output_and_input_redirection():
    shell = setup_shell()
    first = await shell.execute("echo hi > out.txt")
    assert first.success and first.data == ""
    assert first.state_modified
    assert shell.vfs.read_file("/home/Guest/out.txt") == "hi\n"
    await shell.execute("echo bye >> out.txt")
    assert shell.vfs.read_file("/home/Guest/out.txt") == "hi\nbye\n"
    assert (await shell.execute("wc -l < out.txt")).data == "2\n"
    await shell.execute("echo new > out.txt")
    assert shell.vfs.read_file("/home/Guest/out.txt") == "new\n"


@pytest.mark.asyncio
async def test_redirect_creates_missing_parents():
    shell = setup_shell()
    await shell.execute("echo deep > logs/today/run.txt")
    assert shell.vfs.read_file("/home/Guest/logs/today/run.txt") == "deep\n"


@pytest.mark.asyncio
async def test_redirect_errors():
    shell = setup_shell()
    await shell.execute("mkdir folder")
    into_dir = await shell.execute("echo x > folder")
    assert not into_dir.success
    assert into_dir.kind is ErrorKind.VALIDATION
    assert "Is a directory" in into_dir.error

    unwritable_dir = await shell.execute("echo x > /home")
    assert unwritable_dir.error == "'/home': Is a directory"
    assert "Permission denied" not in unwritable_dir.error

    denied = await shell.execute("echo x > /top.txt")
    assert not denied.success
    assert "Permission denied" in denied.error
    assert not shell.vfs.exists("/top.txt")

    no_input = await shell.execute("cat < /none.txt")
    assert no_input.error.startswith("cannot open input: ")


@pytest.mark.asyncio
async def test_unknown_command_and_parse_errors():
    shell = setup_shell()
    missing = await shell.execute("frobnicate --now")
    assert missing.error == "frobnicate: command not found"
    assert missing.kind is ErrorKind.EXECUTION
    unterminated = await shell.execute('echo "oops')
    assert unterminated.kind is ErrorKind.PARSE
    assert unterminated.exit_code == 2
    dangling = await shell.execute("echo a &&")
    assert dangling.exit_code == 2


@pytest.mark.asyncio
async def test_state_modified_is_aggregated():
    shell = setup_shell()
    result = await shell.execute("mkdir made && echo done")
    assert result.data == "done\n"
    assert result.state_modified
    assert not (await shell.execute("echo plain")).state_modified


@pytest.mark.asyncio
async def test_file_commands():
    shell = setup_shell()
    await shell.execute("mkdir -p a/b")
    await shell.execute("touch a/b/one.txt")
    await shell.execute("cp -r a copy")
    assert shell.vfs.is_file("/home/Guest/copy/b/one.txt")
    await shell.execute("mv copy/b/one.txt moved.txt")
    assert shell.vfs.is_file("/home/Guest/moved.txt")
    not_empty = await shell.execute("rmdir a")
    assert "Directory not empty" in not_empty.error
    assert (await shell.execute("rm -r a")).success
    assert (await shell.execute("rm -f ghost")).success
    assert not (await shell.execute("rm ghost")).success


@pytest.mark.asyncio
async def test_chmod_requires_ownership():
    shell = setup_shell()
    await shell.execute("touch mine.txt")
    assert (await shell.execute("chmod 600 mine.txt")).success
    assert shell.vfs.get_node("/home/Guest/mine.txt").permissions == "rw-------"
    denied = await shell.execute("chmod 777 /workspace/app.py")
    assert denied.error == "chmod: changing permissions of '/workspace/app.py': Operation not permitted"
    chown = await shell.execute("chown Guest /workspace/app.py")
    assert "Operation not permitted" in chown.error


@pytest.mark.asyncio
async def test_aliases():
    shell = setup_shell()
    await shell.execute("alias greet='echo hello'")
    assert (await shell.execute("greet world")).data == "hello world\n"
    assert (await shell.execute("alias greet")).data == "alias greet='echo hello'\n"
    await shell.execute("unalias greet")
    assert (await shell.execute("greet")).error == "greet: command not found"


@pytest.mark.asyncio
async def test_environment_variables():
    shell = setup_shell()
    await shell.execute("set NAME=world")
    assert (await shell.execute("echo hello $NAME")).data == "hello world\n"
    listing = await shell.execute("set")
    assert 'NAME="world"\n' in listing.data
    bad = await shell.execute("set 1X=y")
    assert not bad.success
    assert "Invalid variable name" in bad.error
    await shell.execute("unset NAME")
    assert (await shell.execute("echo [$NAME]")).data == "[]\n"
    assert "USER=Guest\n" in (await shell.execute("env")).data


@pytest.mark.asyncio
async def test_su_logout_and_useradd():
    shell = setup_shell()
    denied = await shell.execute("useradd alice pw")
    assert "only root" in denied.error
    await shell.execute("su")
    assert (await shell.execute("whoami")).data == "root\n"
    assert (await shell.execute("useradd alice pw")).success
    assert (await shell.execute("logout")).data == "Logged out from root.\n"
    assert (await shell.execute("whoami")).data == "Guest\n"
    assert shell.vfs.pwd() == "/home/Guest"

    wrong = await shell.execute("su alice wrong")
    assert wrong.error == "su: Authentication failure"
    await shell.execute("su alice pw")
    assert (await shell.execute("whoami")).data == "alice\n"
    assert (await shell.execute("pwd")).data == "/home/alice\n"
    assert not (await shell.execute("ls /home/Guest")).success


@pytest.mark.asyncio
async def test_groups_and_membership():
    shell = setup_shell()
    await shell.execute("su")
    await shell.execute("groupadd staff")
    await shell.execute("usermod -aG staff Guest")
    assert (await shell.execute("groups Guest")).data == "Guest staff\n"


@pytest.mark.asyncio
async def test_run_script_with_arguments():
    shell = setup_shell()
    script = "# greeting\necho first $1\necho count $#\n\nset LOCAL=1\necho all $@\n"
    shell.vfs.write_file("/home/Guest/s.sh", script, user="Guest")
    not_executable = await shell.execute("run s.sh a b")
    assert not_executable.error == "run: 's.sh': Permission denied"

    await shell.execute("chmod 755 s.sh")
    result = await shell.execute("run s.sh a b")
    assert result.data == "first a\ncount 2\nall a b\n"
    assert (await shell.execute("echo [$LOCAL]")).data == "[]\n"
    assert "run s.sh a b" in shell.history.entries()
    assert "echo first a" not in shell.history.entries()


@pytest.mark.asyncio
async def test_run_script_reports_failing_line():
    shell = setup_shell()
    shell.vfs.write_file("/home/Guest/bad.sh", "echo ok\nnope\necho never\n", user="Guest")
    shell.vfs.chmod("/home/Guest/bad.sh", 0o700)
    result = await shell.execute("run bad.sh")
    assert not result.success
    assert result.error == "Script 'bad.sh' error on line 2: nope: command not found"


@pytest.mark.asyncio
async def test_script_depth_is_bounded():
    shell = setup_shell()
    shell.vfs.write_file("/home/Guest/loop.sh", "run loop.sh\n", user="Guest")
    shell.vfs.chmod("/home/Guest/loop.sh", 0o700)
    result = await shell.execute("run loop.sh")
    assert not result.success
    assert "maximum script depth" in result.error


@pytest.mark.asyncio
async def test_su_inside_script_updates_user_variables():
    shell = setup_shell()
    shell.vfs.write_file("/home/Guest/elevate.sh", "su\n", user="Guest")
    shell.vfs.chmod("/home/Guest/elevate.sh", 0o700)
    assert (await shell.execute("run elevate.sh")).success
    assert shell.user == "root"
    assert (await shell.execute("echo $USER $HOME")).data == "root /home/root\n"


@pytest.mark.asyncio
async def test_xargs_builds_commands_from_stdin():
    shell = setup_shell()
    shell.vfs.write_file("/home/Guest/list.txt", "one\ntwo\n", user="Guest")
    result = await shell.execute("cat list.txt | xargs -I {} echo item {}")
    assert result.data == "item one\nitem two\n"
    assert (await shell.execute("cat list.txt | xargs")).data == "one two\n"
    touched = await shell.execute("cat list.txt | xargs touch")
    assert touched.state_modified
    assert shell.vfs.is_file("/home/Guest/one") and shell.vfs.is_file("/home/Guest/two")


@pytest.mark.asyncio
async def test_history_and_help():
    shell = setup_shell()
    await shell.execute("echo a")
    await shell.execute("echo b")
    listing = await shell.execute("history")
    assert listing.data == "    1  echo a\n    2  echo b\n    3  history\n"
    assert (await shell.execute("history -c")).data == "Command history cleared.\n"
    assert len(shell.history) == 0
    overview = (await shell.execute("help")).data
    assert "  echo - Print arguments" in overview
    assert "run SCRIPT" in (await shell.execute("help run")).data


@pytest.mark.asyncio
async def test_tree_and_sort():
    shell = setup_shell()
    tree = (await shell.execute("tree /workspace")).data
    assert tree.splitlines()[0] == "/workspace"
    shell.vfs.write_file("/nums.txt", "10\n9\n100\n9\n")
    assert (await shell.execute("sort -n /nums.txt")).data == "9\n9\n10\n100\n"
    assert (await shell.execute("sort -nru /nums.txt")).data == "100\n10\n9\n"
