"""Tests for true/false, test and ``[``, env/printenv, and source."""

import asyncio

import pytest

from py_vsh.shell import Shell
from py_vsh.types import ExecResult

USAGE = 2


def _exec(shell: Shell, line: str) -> ExecResult:
    """Run one line through the shell."""
    return asyncio.run(shell.exec(line))


@pytest.fixture
def shell() -> Shell:
    """Return a shell with one file, one empty file, and one directory."""
    return Shell(files={"/f.txt": "data", "/empty.txt": "", "/dir/inner": ""})


class TestTrueFalse:
    """Verify the status-only commands."""

    def test_statuses(self, shell: Shell) -> None:
        """true and ``:`` succeed; false fails."""
        assert _exec(shell, "true").exit_code == 0
        assert _exec(shell, ": ignored args").exit_code == 0
        assert _exec(shell, "false").exit_code == 1


class TestTest:
    """Verify conditional expressions."""

    @pytest.mark.parametrize(
        ("expression", "expected"),
        [
            ("-z ''", 0),
            ("-z x", 1),
            ("-n x", 0),
            ("abc", 0),
            ("''", 1),
            ("", 1),
            ("a = a", 0),
            ("a == b", 1),
            ("a != b", 0),
            ("3 -lt 10", 0),
            ("10 -le 3", 1),
            ("-2 -eq -2", 0),
            ("5 -ne 5", 1),
            ("7 -gt 6", 0),
            ("6 -ge 7", 1),
            ("! a = b", 0),
            ("-f f.txt", 0),
            ("-f dir", 1),
            ("-d dir", 0),
            ("-e missing", 1),
            ("-s f.txt", 0),
            ("-s empty.txt", 1),
            ("-r f.txt", 0),
            ("-w dir/inner", 0),
        ],
    )
    def test_expressions(self, shell: Shell, expression: str, expected: int) -> None:
        """Each expression evaluates like coreutils test."""
        assert _exec(shell, f"test {expression}").exit_code == expected
        assert _exec(shell, f"[ {expression} ]").exit_code == expected

    def test_string_not_number(self, shell: Shell) -> None:
        """String comparison does not treat ``10`` and ``010`` as equal."""
        assert _exec(shell, "[ 10 = 010 ]").exit_code == 1
        assert _exec(shell, "[ 10 -eq 010 ]").exit_code == 0

    def test_integer_error(self, shell: Shell) -> None:
        """A non-integer operand is a usage error."""
        result = _exec(shell, "test abc -lt 3")
        assert result.exit_code == USAGE
        assert result.stderr == "test: abc: integer expression expected\n"

    def test_unknown_operator(self, shell: Shell) -> None:
        """Unknown operators are usage errors."""
        assert _exec(shell, "test a -xx b").stderr == "test: -xx: binary operator expected\n"
        assert _exec(shell, "test -q a").stderr == "test: -q: unary operator expected\n"

    def test_too_many_arguments(self, shell: Shell) -> None:
        """Long expressions are rejected."""
        assert _exec(shell, "test a b c d").stderr == "test: too many arguments\n"

    def test_missing_bracket(self, shell: Shell) -> None:
        """``[`` requires its closing ``]``."""
        result = _exec(shell, "[ a = a")
        assert result.exit_code == USAGE
        assert result.stderr == "[: missing `]'\n"

    def test_variables_in_condition(self, shell: Shell) -> None:
        """Quoted empty variables stay as arguments."""
        assert _exec(shell, 'X=; [ -z "$X" ] && echo empty').stdout == "empty\n"


class TestEnv:
    """Verify env and printenv."""

    def test_env_lists_sorted(self) -> None:
        """env prints NAME=value, sorted."""
        shell = Shell(cwd="/", env={"B": "2", "A": "1"})
        assert _exec(shell, "env").stdout == "A=1\nB=2\nHOME=/\nPATH=/bin:/usr/bin\n"

    def test_positional_parameters_hidden(self) -> None:
        """Only identifier names are listed."""
        shell = Shell(cwd="/")
        _exec(shell, "f() { env; }")
        assert _exec(shell, "f a b").stdout == "HOME=/\nPATH=/bin:/usr/bin\n"

    def test_printenv_names(self, shell: Shell) -> None:
        """printenv NAME prints values; a missing one fails."""
        assert _exec(shell, "printenv HOME").stdout == "/\n"
        result = _exec(shell, "printenv HOME NOPE")
        assert result.stdout == "/\n"
        assert result.exit_code == 1

    def test_printenv_all(self) -> None:
        """Bare printenv matches env."""
        shell = Shell(cwd="/")
        assert _exec(shell, "printenv").stdout == _exec(shell, "env").stdout


class TestSource:
    """Verify source and ``.``."""

    def test_runs_in_current_shell(self) -> None:
        """Variables and functions from the script persist."""
        shell = Shell(files={"/lib.sh": "GREETING=hello\ngreet() { echo $GREETING $1; }\n"})
        _exec(shell, "source lib.sh")
        assert _exec(shell, "greet world").stdout == "hello world\n"

    def test_dot_spelling(self) -> None:
        """``.`` is the same command."""
        shell = Shell(files={"/x.sh": "echo sourced"})
        assert _exec(shell, ". /x.sh").stdout == "sourced\n"

    def test_status_of_script(self) -> None:
        """The status is the script's last command's."""
        shell = Shell(files={"/fail.sh": "true\nfalse\n"})
        assert _exec(shell, "source fail.sh").exit_code == 1

    def test_missing_file(self, shell: Shell) -> None:
        """A missing script is an error."""
        result = _exec(shell, "source nope.sh")
        assert result.exit_code == 1
        assert result.stderr == "bash: nope.sh: No such file or directory\n"

    def test_no_argument(self, shell: Shell) -> None:
        """source needs a file name."""
        result = _exec(shell, "source")
        assert result.exit_code == USAGE
        assert result.stderr == "bash: source: filename argument required\n"
