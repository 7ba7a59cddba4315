"""Interactive REPL (Read-Eval-Print Loop) for the virtual shell.

The REPL is the terminal interface around a ``Shell``:

    1. **Read** — display a prompt and read user input.
    2. **Eval** — pass the line to ``shell.exec()``.
    3. **Print** — write stdout and stderr to the real terminal.
    4. **Loop** — repeat until ``exit``, Ctrl+D, or Ctrl+C.

The shell is fully testable (it returns results, no I/O); the REPL is
the thin I/O wrapper that connects it to ``stdin``/``stdout``.  The
helper functions (``parse_args``, ``build_shell``, ``build_prompt``,
``format_banner``) are pure and testable.  ``run()`` is the I/O
entrypoint.
"""

import argparse
import asyncio
import readline
import sys

from py_vsh.completer import Completer
from py_vsh.shell import Shell

_BANNER_WIDTH = 38


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line flags onto the ``Shell`` keyword arguments."""
    parser = argparse.ArgumentParser(
        prog="py-vsh", description="A simulated bash shell over an in-memory filesystem."
    )
    parser.add_argument("-c", dest="command", help="run COMMAND and exit")
    parser.add_argument("--cwd", help="initial working directory")
    parser.add_argument("--max-call-depth", type=int, help="function nesting cap")
    parser.add_argument("--max-command-count", type=int, help="commands per line cap")
    parser.add_argument("--max-loop-iterations", type=int, help="iterations per loop cap")
    return parser.parse_args(argv)


def build_shell(args: argparse.Namespace) -> Shell:
    """Create a shell configured from parsed flags."""
    return Shell(
        cwd=args.cwd,
        max_call_depth=args.max_call_depth,
        max_command_count=args.max_command_count,
        max_loop_iterations=args.max_loop_iterations,
    )


def format_banner() -> str:
    """Return the greeting shown when the REPL starts."""
    border = "=" * _BANNER_WIDTH
    return (
        f"\n  {border}\n            py-vsh v0.1.0\n    A simulated bash over a virtual fs\n"
        f"  {border}\n\nType 'exit' or press Ctrl+D to quit.\n"
    )


def build_prompt(shell: Shell) -> str:
    """Build the prompt, abbreviating the home directory to ``~``.

    Args:
        shell: The running shell.

    Returns:
        A prompt string like ``user@vsh:~/src$ ``.

    """
    cwd = shell.cwd
    home = shell.env.get("HOME", "")
    if home and home != "/" and (cwd == home or cwd.startswith(home + "/")):
        cwd = "~" + cwd[len(home) :]
    return f"user@vsh:{cwd}$ "


def _emit(stdout: str, stderr: str) -> None:
    if stdout:
        sys.stdout.write(stdout)
    if stderr:
        sys.stderr.write(stderr)


def run(argv: list[str] | None = None) -> int:
    """Run one ``-c`` command, or the interactive REPL.

    This is the ``py-vsh`` console entry point.  It handles:
    - Flag parsing and shell creation.
    - Tab completion via readline.
    - The read-eval-print loop.
    - Graceful handling of Ctrl+C and Ctrl+D.

    Returns:
        The exit code of the last line run.

    """
    args = parse_args(argv)
    shell = build_shell(args)

    if args.command is not None:
        result = asyncio.run(shell.exec(args.command))
        _emit(result.stdout, result.stderr)
        return result.exit_code

    # Wire up tab completion via readline.
    completer = Completer(shell)
    readline.set_completer(completer.complete)
    readline.set_completer_delims(" \t;|&")
    readline.parse_and_bind("tab: complete")

    print(format_banner())  # noqa: T201

    exit_code = 0
    try:
        while True:
            try:
                line = input(build_prompt(shell))
            except EOFError:
                # Ctrl+D: graceful exit
                print()  # noqa: T201
                break

            result = asyncio.run(shell.exec(line))
            _emit(result.stdout, result.stderr)
            exit_code = result.exit_code
            if line.strip().split()[:1] == ["exit"]:
                break

    except KeyboardInterrupt:
        # Ctrl+C: graceful exit
        print("\nInterrupted.")  # noqa: T201

    return exit_code
