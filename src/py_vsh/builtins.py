"""Shell builtins — commands that change the interpreter's own state.

A registered command only sees a ``CommandContext``; it cannot change
the working directory or the function-local scope stack.  The handful
of commands that must do so are builtins, dispatched inline by the
engine before any registered command is considered:

- ``cd``      change directory (``-`` and ``~`` understood)
- ``export``  set, list, or un-export variables
- ``unset``   remove variables (``-f`` removes functions)
- ``exit``    report an exit code
- ``local``   declare function-local variables

Each handler takes the ``ShellState``, the filesystem, and the
expanded arguments, and returns an ``ExecResult``.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, TypeAlias

from py_vsh.parser import NAME_PATTERN
from py_vsh.types import ExecResult

if TYPE_CHECKING:
    from py_vsh.fs.interface import FileSystem
    from py_vsh.state import ShellState

BuiltinHandler: TypeAlias = "Callable[[ShellState, FileSystem, list[str]], Awaitable[ExecResult]]"


def split_assignment(text: str) -> tuple[str, str] | None:
    """Split ``NAME=value`` into its parts, or return None if not one."""
    name, sep, value = text.partition("=")
    if not sep or NAME_PATTERN.match(name) is None:
        return None
    return name, value


async def _cd(state: ShellState, fs: FileSystem, args: list[str]) -> ExecResult:
    home = state.env.get("HOME", "/")
    target = args[0] if args else home
    if target == "-":
        new_dir = state.previous_dir or state.cwd
    elif target == "~":
        new_dir = home
    else:
        new_dir = fs.resolve_path(state.cwd, target)
    try:
        info = await fs.stat(new_dir)
    except FileNotFoundError:
        return ExecResult.failure(f"cd: {target}: No such file or directory\n")
    if not info.is_directory:
        return ExecResult.failure(f"cd: {target}: Not a directory\n")
    state.previous_dir = state.cwd
    state.cwd = new_dir
    state.env["OLDPWD"] = state.previous_dir
    state.env["PWD"] = new_dir
    return ExecResult()


def _declare_line(name: str, value: str) -> str:
    escaped = value.replace("'", "'\\''")
    return f"declare -x {name}='{escaped}'\n"


async def _export(state: ShellState, _fs: FileSystem, args: list[str]) -> ExecResult:
    """Set, list, or remove variables.

    ``export`` and ``export -p`` list every variable, sorted, as
    ``declare -x NAME='value'``.  ``export -n NAME`` removes NAME.
    ``export NAME`` creates NAME empty if it does not exist.
    """
    unexport = "-n" in args
    names = [arg for arg in args if arg not in ("-n", "-p", "--")]
    if not names and not unexport:
        listing = "".join(
            _declare_line(name, state.env[name])
            for name in sorted(state.env)
            if NAME_PATTERN.match(name)
        )
        return ExecResult(stdout=listing)

    errors: list[str] = []
    for arg in names:
        name, sep, value = arg.partition("=")
        if NAME_PATTERN.match(name) is None:
            errors.append(f"bash: export: `{arg}': not a valid identifier\n")
        elif unexport:
            state.env.discard(name)
        elif sep:
            state.env[name] = value
        elif name not in state.env:
            state.env[name] = ""
    if errors:
        return ExecResult.failure("".join(errors))
    return ExecResult()


async def _unset(state: ShellState, _fs: FileSystem, args: list[str]) -> ExecResult:
    functions = False
    for arg in args:
        if arg == "-f":
            functions = True
        elif arg == "-v":
            functions = False
        elif functions:
            state.functions.pop(arg, None)
        else:
            state.env.discard(arg)
    return ExecResult()


async def _exit(_state: ShellState, _fs: FileSystem, args: list[str]) -> ExecResult:
    if not args:
        return ExecResult()
    try:
        code = int(args[0])
    except ValueError:
        return ExecResult.failure(f"bash: exit: {args[0]}: numeric argument required\n")
    return ExecResult(exit_code=code)


async def _local(state: ShellState, _fs: FileSystem, args: list[str]) -> ExecResult:
    """Declare variables local to the running function.

    The value a name had before the call is recorded once per frame,
    so it is restored when the function returns, however it returns.
    """
    if not state.in_function:
        return ExecResult.failure("bash: local: can only be used in a function\n")
    errors: list[str] = []
    for arg in args:
        name, sep, value = arg.partition("=")
        if NAME_PATTERN.match(name) is None:
            errors.append(f"bash: local: `{arg}': not a valid identifier\n")
            continue
        state.record_local(name)
        if sep:
            state.env[name] = value
        elif name not in state.env:
            state.env[name] = ""
    if errors:
        return ExecResult.failure("".join(errors))
    return ExecResult()


BUILTINS: dict[str, BuiltinHandler] = {
    "cd": _cd,
    "export": _export,
    "unset": _unset,
    "exit": _exit,
    "local": _local,
}
