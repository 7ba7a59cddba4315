"""Tests for ls, mkdir, touch, rm, cp, mv, and pwd."""

import asyncio

import pytest

from py_vsh.shell import Shell
from py_vsh.types import ExecResult

LS_TROUBLE = 2


def _exec(shell: Shell, line: str) -> ExecResult:
    """Run one line through the shell."""
    return asyncio.run(shell.exec(line))


def _exists(shell: Shell, path: str) -> bool:
    """Return True if *path* exists in the shell's filesystem."""
    return asyncio.run(shell.fs.exists(path))


@pytest.fixture
def shell() -> Shell:
    """Return a shell rooted at / with a small tree."""
    return Shell(
        files={
            "/docs/a.txt": "alpha\n",
            "/docs/b.txt": "bravo\n",
            "/docs/.secret": "",
            "/docs/sub/c.txt": "charlie\n",
        }
    )


class TestLs:
    """Verify ls."""

    def test_cwd(self, shell: Shell) -> None:
        """Bare ls lists the working directory."""
        assert _exec(shell, "ls").stdout == "docs\n"

    def test_directory(self, shell: Shell) -> None:
        """Entries are sorted and dotfiles hidden."""
        assert _exec(shell, "ls docs").stdout == "a.txt\nb.txt\nsub\n"

    def test_all(self, shell: Shell) -> None:
        """``-a`` shows dotfiles plus ``.`` and ``..``."""
        assert _exec(shell, "ls -a docs").stdout == ".\n..\n.secret\na.txt\nb.txt\nsub\n"

    def test_file_operand(self, shell: Shell) -> None:
        """A file operand is listed by name."""
        assert _exec(shell, "ls docs/a.txt").stdout == "docs/a.txt\n"

    def test_several_directories(self, shell: Shell) -> None:
        """Several directories get headers separated by a blank line."""
        result = _exec(shell, "ls docs docs/sub")
        assert result.stdout == "docs:\na.txt\nb.txt\nsub\n\ndocs/sub:\nc.txt\n"

    def test_long_format(self, shell: Shell) -> None:
        """``-l`` shows mode, size, and a slash on directories."""
        lines = _exec(shell, "ls -l docs").stdout.splitlines()
        assert lines[0].startswith("-rw-r--r-- 1 user user     6 ")
        assert lines[0].endswith(" a.txt")
        assert lines[2].startswith("drwxr-xr-x")
        assert lines[2].endswith(" sub/")

    def test_missing(self, shell: Shell) -> None:
        """A missing operand is exit 2."""
        result = _exec(shell, "ls nope")
        assert result.exit_code == LS_TROUBLE
        assert result.stderr == "ls: nope: No such file or directory\n"

    def test_glob(self, shell: Shell) -> None:
        """Patterns expand before ls sees them."""
        assert _exec(shell, "ls docs/*.txt").stdout == "docs/a.txt\ndocs/b.txt\n"


class TestMkdirTouch:
    """Verify mkdir and touch."""

    def test_mkdir(self, shell: Shell) -> None:
        """mkdir creates a directory."""
        _exec(shell, "mkdir new")
        assert _exec(shell, "ls").stdout == "docs\nnew\n"

    def test_mkdir_existing(self, shell: Shell) -> None:
        """An existing directory fails without ``-p``."""
        result = _exec(shell, "mkdir docs")
        assert result.stderr == "mkdir: cannot create directory 'docs': File exists\n"
        assert _exec(shell, "mkdir -p docs").exit_code == 0

    def test_mkdir_parents(self, shell: Shell) -> None:
        """``-p`` creates the whole chain."""
        assert _exec(shell, "mkdir x/y").exit_code == 1
        _exec(shell, "mkdir -p x/y/z")
        assert _exists(shell, "/x/y/z")

    def test_mkdir_missing_operand(self, shell: Shell) -> None:
        """mkdir needs a name."""
        assert _exec(shell, "mkdir").stderr == "mkdir: missing operand\n"

    def test_touch(self, shell: Shell) -> None:
        """touch creates empty files and keeps existing content."""
        _exec(shell, "touch new.txt docs/a.txt")
        assert _exec(shell, "cat new.txt docs/a.txt").stdout == "alpha\n"
        assert _exists(shell, "/new.txt")

    def test_touch_directory_is_fine(self, shell: Shell) -> None:
        """Touching a directory succeeds."""
        assert _exec(shell, "touch docs").exit_code == 0


class TestRm:
    """Verify rm."""

    def test_file(self, shell: Shell) -> None:
        """rm removes a file."""
        _exec(shell, "rm docs/a.txt")
        assert not _exists(shell, "/docs/a.txt")

    def test_directory_needs_recursive(self, shell: Shell) -> None:
        """A directory needs ``-r``."""
        result = _exec(shell, "rm docs/sub")
        assert result.stderr == "rm: cannot remove 'docs/sub': Is a directory\n"
        _exec(shell, "rm -r docs/sub")
        assert not _exists(shell, "/docs/sub/c.txt")

    def test_missing(self, shell: Shell) -> None:
        """Missing files fail unless ``-f``."""
        result = _exec(shell, "rm ghost")
        assert result.stderr == "rm: cannot remove 'ghost': No such file or directory\n"
        assert _exec(shell, "rm -f ghost").exit_code == 0

    def test_glob(self, shell: Shell) -> None:
        """Patterns remove every match."""
        _exec(shell, "rm docs/*.txt")
        assert _exec(shell, "ls docs").stdout == "sub\n"


class TestCopyMove:
    """Verify cp and mv."""

    def test_copy_file(self, shell: Shell) -> None:
        """cp duplicates content."""
        _exec(shell, "cp docs/a.txt copy.txt")
        assert _exec(shell, "cat copy.txt docs/a.txt").stdout == "alpha\nalpha\n"

    def test_copy_into_directory(self, shell: Shell) -> None:
        """A directory destination keeps the source name."""
        _exec(shell, "cp docs/a.txt docs/b.txt docs/sub")
        assert _exec(shell, "ls docs/sub").stdout == "a.txt\nb.txt\nc.txt\n"

    def test_copy_directory_needs_recursive(self, shell: Shell) -> None:
        """Directories are skipped without ``-r``."""
        result = _exec(shell, "cp docs/sub backup")
        assert result.stderr == "cp: -r not specified; omitting directory 'docs/sub'\n"
        _exec(shell, "cp -r docs/sub backup")
        assert _exec(shell, "cat backup/c.txt").stdout == "charlie\n"

    def test_copy_missing(self, shell: Shell) -> None:
        """A missing source is reported."""
        result = _exec(shell, "cp ghost x")
        assert result.stderr == "cp: cannot stat 'ghost': No such file or directory\n"

    def test_move(self, shell: Shell) -> None:
        """mv renames."""
        _exec(shell, "mv docs/a.txt docs/z.txt")
        assert _exec(shell, "ls docs").stdout == "b.txt\nsub\nz.txt\n"

    def test_move_directory(self, shell: Shell) -> None:
        """mv moves whole directories."""
        _exec(shell, "mv docs/sub moved")
        assert _exec(shell, "cat moved/c.txt").stdout == "charlie\n"
        assert not _exists(shell, "/docs/sub")

    def test_missing_operand(self, shell: Shell) -> None:
        """Both need a source and a destination."""
        assert _exec(shell, "cp a").stderr == "cp: missing file operand\n"
        assert _exec(shell, "mv").stderr == "mv: missing file operand\n"


class TestPwd:
    """Verify pwd."""

    def test_pwd_follows_cd(self, shell: Shell) -> None:
        """pwd prints the current directory."""
        assert _exec(shell, "cd docs/sub; pwd").stdout == "/docs/sub\n"
