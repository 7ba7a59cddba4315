"""Tests for the tab completer.

``completions(text, line)`` is pure logic, so the readline callback
never needs a terminal to be tested.
"""

import asyncio

import pytest

from py_vsh.completer import Completer
from py_vsh.shell import Shell


@pytest.fixture
def completer() -> Completer:
    """Return a completer over a small project tree."""
    shell = Shell(
        files={
            "/proj/src/main.py": "",
            "/proj/src/util.py": "",
            "/proj/README": "",
            "/proj/.hidden": "",
        },
        cwd="/proj",
    )
    return Completer(shell)


class TestCommandCompletion:
    """Verify completion in command position."""

    def test_first_word(self) -> None:
        """The first word completes against commands."""
        assert Completer(Shell()).completions("ec", "ec") == ["echo"]

    def test_builtins_included(self) -> None:
        """Builtins are offered alongside commands."""
        assert Completer(Shell()).completions("ex", "ex") == ["exit", "export"]

    def test_functions_included(self) -> None:
        """User functions are offered too."""
        shell = Shell()
        asyncio.run(shell.exec("greet() { echo hi; }"))
        assert Completer(shell).completions("gre", "gre") == ["greet", "grep"]

    def test_after_separator(self) -> None:
        """A pipe or chain operator starts a new command."""
        completer = Completer(Shell())
        assert completer.completions("gr", "cat f | gr") == ["grep"]
        assert completer.completions("pw", "cd /tmp && pw") == ["pwd"]
        assert completer.completions("tr", "ls; tr") == ["tr", "true"]

    def test_after_keyword(self) -> None:
        """``then`` and ``do`` start a new command."""
        completer = Completer(Shell())
        assert completer.completions("ech", "if true; then ech") == ["echo"]
        assert completer.completions("ech", "for i in a; do ech") == ["echo"]


class TestVariableCompletion:
    """Verify variable-name completion."""

    def test_dollar_prefix(self) -> None:
        """``$PA`` completes to ``$PATH``."""
        assert Completer(Shell()).completions("$PA", "echo $PA") == ["$PATH"]

    def test_variable_commands(self) -> None:
        """Arguments of unset and export are variable names."""
        shell = Shell(env={"PAGER": "less"})
        completer = Completer(shell)
        assert completer.completions("PA", "unset PA") == ["PAGER", "PATH"]
        assert completer.completions("HO", "export HO") == ["HOME"]


class TestPathCompletion:
    """Verify filesystem completion."""

    def test_relative(self, completer: Completer) -> None:
        """Entries of the cwd, directories marked, dotfiles hidden."""
        assert completer.completions("", "cat ") == ["README", "src/"]

    def test_dotfiles_with_dot_prefix(self, completer: Completer) -> None:
        """A leading dot shows hidden entries."""
        assert completer.completions(".h", "cat .h") == [".hidden"]

    def test_nested(self, completer: Completer) -> None:
        """A partial path completes inside its directory."""
        assert completer.completions("src/m", "cat src/m") == ["src/main.py"]
        assert completer.completions("src/", "cat src/") == ["src/main.py", "src/util.py"]

    def test_absolute(self, completer: Completer) -> None:
        """Absolute paths stay absolute."""
        assert completer.completions("/pr", "ls /pr") == ["/proj/"]

    def test_no_match(self, completer: Completer) -> None:
        """Nothing matches an unknown prefix."""
        assert completer.completions("zzz", "cat zzz") == []
