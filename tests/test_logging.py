"""Tests for the session audit log."""

import asyncio

from py_vsh.logging import LogEntry, Logger, LogLevel
from py_vsh.shell import Shell
from py_vsh.types import CommandContext, ExecResult, FunctionCommand


async def _broken(_args: list[str], _ctx: CommandContext) -> ExecResult:
    """Always raise."""
    msg = "disk on fire"
    raise OSError(msg)


class TestLogLevel:
    """Verify level ordering."""

    def test_ordering(self) -> None:
        """Levels compare by severity."""
        assert LogLevel.DEBUG < LogLevel.INFO < LogLevel.WARNING < LogLevel.ERROR


class TestLogEntry:
    """Verify entry formatting."""

    def test_str(self) -> None:
        """Entries render as ``[LEVEL] source: message``."""
        entry = LogEntry(level=LogLevel.WARNING, message="slow", source="guard")
        assert str(entry) == "[WARNING] guard: slow"


class TestLogger:
    """Verify the in-memory log buffer."""

    def test_log_and_entries(self) -> None:
        """Entries come back in order."""
        logger = Logger()
        logger.log(LogLevel.INFO, "one", source="a")
        logger.log(LogLevel.ERROR, "two", source="b", depth=3)
        entries = logger.entries
        assert [e.message for e in entries] == ["one", "two"]
        assert entries[1].depth == 3

    def test_filter(self) -> None:
        """Filtering by level and source combine."""
        logger = Logger()
        logger.log(LogLevel.DEBUG, "d", source="shell")
        logger.log(LogLevel.WARNING, "w", source="guard")
        logger.log(LogLevel.ERROR, "e", source="shell")
        assert [e.message for e in logger.filter(min_level=LogLevel.WARNING)] == ["w", "e"]
        assert [e.message for e in logger.filter(source="shell")] == ["d", "e"]
        assert [
            e.message for e in logger.filter(min_level=LogLevel.WARNING, source="shell")
        ] == ["e"]

    def test_filter_returns_copy(self) -> None:
        """Mutating a filter result does not touch the log."""
        logger = Logger()
        logger.log(LogLevel.INFO, "kept", source="x")
        logger.filter().clear()
        assert len(logger.entries) == 1

    def test_capacity(self) -> None:
        """Only the newest entries are kept when a capacity is set."""
        logger = Logger(capacity=2)
        for message in ("a", "b", "c"):
            logger.log(LogLevel.INFO, message, source="x")
        assert [e.message for e in logger.entries] == ["b", "c"]

    def test_clear(self) -> None:
        """clear() empties the log."""
        logger = Logger()
        logger.log(LogLevel.INFO, "x", source="x")
        logger.clear()
        assert logger.entries == []


class TestShellLogging:
    """Verify what the shell records."""

    def test_lines_logged_at_debug(self) -> None:
        """Each top-level line is recorded."""
        shell = Shell()
        asyncio.run(shell.exec("echo hi"))
        assert str(shell.logger.entries[0]) == "[DEBUG] shell: exec: echo hi"

    def test_nested_lines_not_logged(self) -> None:
        """Function bodies do not add exec entries."""
        shell = Shell()
        asyncio.run(shell.exec("f() { echo a; }; f; f"))
        execs = [e for e in shell.logger.entries if e.message.startswith("exec:")]
        assert len(execs) == 1

    def test_syntax_error_logged(self) -> None:
        """Parse failures are warnings."""
        shell = Shell()
        asyncio.run(shell.exec("if"))
        warnings = shell.logger.filter(min_level=LogLevel.WARNING, source="shell")
        assert len(warnings) == 1

    def test_command_exception_logged(self) -> None:
        """Unexpected command exceptions are errors from dispatch."""
        shell = Shell()
        shell.register_command(FunctionCommand("broken", _broken))
        result = asyncio.run(shell.exec("broken"))
        assert result.stderr == "broken: disk on fire\n"
        errors = shell.logger.filter(min_level=LogLevel.ERROR)
        assert [str(e) for e in errors] == ["[ERROR] dispatch: broken: disk on fire"]

    def test_shared_logger(self) -> None:
        """A logger passed in is the one used."""
        logger = Logger()
        shell = Shell(logger=logger)
        asyncio.run(shell.exec("true"))
        assert shell.logger is logger
        assert logger.entries
