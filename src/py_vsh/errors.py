"""Exceptions raised inside the shell front end and execution engine.

Expected command failures never raise: they travel back as an
``ExecResult`` with a non-zero exit code.  Only two conditions unwind
the Python stack:

- **ShellSyntaxError** — the lexer or parser could not make sense of a
  line.  The engine catches it and reports exit code 2.
- **ExecutionLimitError** — the command-count guard tripped somewhere
  below a top-level ``exec`` call.  It unwinds every nested call (running
  their cleanups) and is converted to a result only by the outermost
  ``exec``.
"""


class ShellSyntaxError(Exception):
    """A line of shell syntax could not be tokenized or parsed."""

    def __init__(self, message: str) -> None:
        """Create a syntax error with a bash-style description."""
        super().__init__(message)
        self.message = message


class ExecutionLimitError(Exception):
    """A resource limit that aborts the whole top-level ``exec`` was hit."""

    def __init__(self, message: str) -> None:
        """Create a limit error carrying the stderr text to report."""
        super().__init__(message)
        self.message = message
