"""Tests for pipelines.

Stages run one after another; each stage's stdout becomes the next
stage's stdin and only the last stage's stdout reaches the caller.
Every stage's stderr is kept, and the pipeline's exit code is the last
stage's.
"""

import asyncio

from py_vsh.shell import Shell
from py_vsh.types import ExecResult

NOT_FOUND = 127


def _exec(shell: Shell, line: str) -> ExecResult:
    """Run one line through the shell."""
    return asyncio.run(shell.exec(line))


class TestPipelines:
    """Verify data flow between stages."""

    def test_two_stages(self) -> None:
        """stdout feeds the next stage."""
        assert _exec(Shell(), "echo hello | tr a-z A-Z").stdout == "HELLO\n"

    def test_three_stages(self) -> None:
        """Longer pipelines chain naturally."""
        line = "echo -e 'b\\na\\nb\\nc' | sort | uniq -c"
        assert _exec(Shell(), line).stdout == "      1 a\n      2 b\n      1 c\n"

    def test_only_last_stdout_survives(self) -> None:
        """Intermediate output is consumed, not printed."""
        assert _exec(Shell(), "echo visible | true").stdout == ""

    def test_file_into_pipeline(self) -> None:
        """A file read by the first stage flows through."""
        shell = Shell(files={"/log.txt": "ok\nerror: a\nok\nerror: b\n"})
        assert _exec(shell, "cat log.txt | grep error | wc -l").stdout == "2\n"

    def test_grep_head(self) -> None:
        """Filters combine like in a real shell."""
        shell = Shell(files={"/n.txt": "".join(f"{i}\n" for i in range(1, 21))})
        assert _exec(shell, "grep 1 n.txt | head -n 3").stdout == "1\n10\n11\n"


class TestPipelineStatus:
    """Verify exit codes and error streams."""

    def test_status_is_last_stage(self) -> None:
        """A failing early stage does not fail the pipeline."""
        assert _exec(Shell(), "false | true").exit_code == 0
        assert _exec(Shell(), "true | false").exit_code == 1

    def test_unknown_stage(self) -> None:
        """An unknown last command gives 127."""
        result = _exec(Shell(), "echo x | nosuch")
        assert result.exit_code == NOT_FOUND
        assert result.stderr == "bash: nosuch: command not found\n"

    def test_stderr_accumulates(self) -> None:
        """Errors from every stage are reported."""
        result = _exec(Shell(), "cat missing | nosuch")
        assert result.stderr == (
            "cat: missing: No such file or directory\nbash: nosuch: command not found\n"
        )

    def test_negated_pipeline(self) -> None:
        """``!`` applies to the pipeline's status."""
        assert _exec(Shell(), "! echo x | grep y").exit_code == 0


class TestPipesAndChains:
    """Verify pipes mixed with ``&&``, ``||`` and ``;``."""

    def test_pipe_then_and(self) -> None:
        """``a | b && c`` runs c after the pipeline succeeds."""
        assert _exec(Shell(), "echo a | cat && echo b").stdout == "a\nb\n"

    def test_pipe_then_or(self) -> None:
        """``||`` reacts to the pipeline's status."""
        assert _exec(Shell(), "echo a | grep z || echo none").stdout == "none\n"

    def test_chain_after_semicolon_is_a_new_pipeline(self) -> None:
        """``;`` ends the pipeline; the next command gets no piped input."""
        assert _exec(Shell(), "echo a | cat; cat").stdout == "a\n"

    def test_variables_in_stages(self) -> None:
        """Each stage expands its own words."""
        line = "WORD=needle; echo -e 'hay\\nneedle' | grep $WORD"
        assert _exec(Shell(), line).stdout == "needle\n"
