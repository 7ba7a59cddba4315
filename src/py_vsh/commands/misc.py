"""Miscellaneous commands — true/false, test, env, and source.

``test`` (also spelled ``[``) supports the common unary file and string
tests, string comparison, integer comparison, and a leading ``!``.
Exit codes follow coreutils: 0 true, 1 false, 2 usage error.
"""

from __future__ import annotations

import operator
from collections.abc import Callable
from typing import TYPE_CHECKING

from py_vsh.commands.common import join_lines
from py_vsh.parser import NAME_PATTERN
from py_vsh.types import ExecResult

if TYPE_CHECKING:
    from py_vsh.types import CommandContext, CommandHandler

_TEST_USAGE = 2

_INTEGER_TESTS: dict[str, Callable[[int, int], bool]] = {
    "-eq": operator.eq,
    "-ne": operator.ne,
    "-lt": operator.lt,
    "-le": operator.le,
    "-gt": operator.gt,
    "-ge": operator.ge,
}

_STRING_TESTS: dict[str, Callable[[str, str], bool]] = {
    "=": operator.eq,
    "==": operator.eq,
    "!=": operator.ne,
}


class ExpressionError(Exception):
    """A malformed ``test`` expression."""


async def _cmd_true(_args: list[str], _ctx: CommandContext) -> ExecResult:
    return ExecResult()


async def _cmd_false(_args: list[str], _ctx: CommandContext) -> ExecResult:
    return ExecResult(exit_code=1)


async def _unary(flag: str, operand: str, ctx: CommandContext) -> bool:
    """Evaluate a one-operand test such as ``-f path`` or ``-z text``.

    Raises:
        ExpressionError: If *flag* is not a known unary operator.

    """
    if flag == "-z":
        return not operand
    if flag == "-n":
        return bool(operand)
    if flag not in ("-e", "-f", "-d", "-s", "-r", "-w"):
        msg = f"{flag}: unary operator expected"
        raise ExpressionError(msg)
    path = ctx.resolve(operand)
    if not await ctx.fs.exists(path):
        return False
    info = await ctx.fs.stat(path)
    if flag == "-f":
        return info.is_file
    if flag == "-d":
        return info.is_directory
    if flag == "-s":
        return info.size > 0
    return True


def _binary(left: str, op: str, right: str) -> bool:
    """Evaluate a two-operand comparison.

    Raises:
        ExpressionError: For an unknown operator or a non-integer operand.

    """
    if op in _STRING_TESTS:
        return _STRING_TESTS[op](left, right)
    if op in _INTEGER_TESTS:
        try:
            return _INTEGER_TESTS[op](int(left), int(right))
        except ValueError:
            bad = left if not left.lstrip("-").isdigit() else right
            msg = f"{bad}: integer expression expected"
            raise ExpressionError(msg) from None
    msg = f"{op}: binary operator expected"
    raise ExpressionError(msg)


async def _evaluate(args: list[str], ctx: CommandContext) -> bool:
    """Evaluate a test expression of up to four words.

    Raises:
        ExpressionError: If the expression is malformed.

    """
    if args and args[0] == "!":
        return not await _evaluate(args[1:], ctx)
    match args:
        case []:
            return False
        case [single]:
            return bool(single)
        case [flag, operand]:
            return await _unary(flag, operand, ctx)
        case [left, op, right]:
            return _binary(left, op, right)
        case _:
            msg = "too many arguments"
            raise ExpressionError(msg)


async def _cmd_test(args: list[str], ctx: CommandContext) -> ExecResult:
    """Evaluate a conditional expression: 0 when true, 1 when false."""
    try:
        return ExecResult(exit_code=0 if await _evaluate(args, ctx) else 1)
    except ExpressionError as e:
        return ExecResult.failure(f"test: {e}\n", _TEST_USAGE)


async def _cmd_bracket(args: list[str], ctx: CommandContext) -> ExecResult:
    """``[ EXPR ]`` — like ``test`` but requires the closing bracket."""
    if not args or args[-1] != "]":
        return ExecResult.failure("[: missing `]'\n", _TEST_USAGE)
    return await _cmd_test(args[:-1], ctx)


def _variable_lines(ctx: CommandContext) -> list[str]:
    return [f"{name}={ctx.env[name]}" for name in sorted(ctx.env) if NAME_PATTERN.match(name)]


async def _cmd_env(_args: list[str], ctx: CommandContext) -> ExecResult:
    """Print every variable as ``NAME=value``, sorted."""
    return ExecResult(stdout=join_lines(_variable_lines(ctx)))


async def _cmd_printenv(args: list[str], ctx: CommandContext) -> ExecResult:
    """Print all variables, or the values of the named ones.

    A missing name produces no output and makes the exit code 1.
    """
    if not args:
        return ExecResult(stdout=join_lines(_variable_lines(ctx)))
    values = [ctx.env[name] for name in args if name in ctx.env]
    return ExecResult(stdout=join_lines(values), exit_code=0 if len(values) == len(args) else 1)


async def _cmd_source(args: list[str], ctx: CommandContext) -> ExecResult:
    """Run a script file in the current shell."""
    if not args:
        return ExecResult.failure("bash: source: filename argument required\n", _TEST_USAGE)
    try:
        script = await ctx.fs.read_file(ctx.resolve(args[0]))
    except OSError:
        return ExecResult.failure(f"bash: {args[0]}: No such file or directory\n")
    return await ctx.exec(script)


MISC_COMMANDS: dict[str, CommandHandler] = {
    "true": _cmd_true,
    "false": _cmd_false,
    ":": _cmd_true,
    "test": _cmd_test,
    "[": _cmd_bracket,
    "env": _cmd_env,
    "printenv": _cmd_printenv,
    "source": _cmd_source,
    ".": _cmd_source,
}
