"""Helpers shared by the command implementations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from py_vsh.types import CommandContext

STDIN_LABEL = "-"


@dataclass(frozen=True)
class Source:
    """One input of a filter command: a file or stdin."""

    label: str
    content: str


async def read_sources(
    name: str, paths: list[str], ctx: CommandContext
) -> tuple[list[Source], str]:
    """Read every input of a filter command.

    With no paths, stdin is the only input; ``-`` also means stdin.

    Args:
        name: Command name used in error messages.
        paths: File operands.
        ctx: The command context.

    Returns:
        The readable inputs, and the error text for the unreadable ones.

    """
    if not paths:
        return [Source(STDIN_LABEL, ctx.stdin)], ""
    sources: list[Source] = []
    errors: list[str] = []
    for path in paths:
        if path == STDIN_LABEL:
            sources.append(Source(STDIN_LABEL, ctx.stdin))
            continue
        try:
            sources.append(Source(path, await ctx.fs.read_file(ctx.resolve(path))))
        except IsADirectoryError:
            errors.append(f"{name}: {path}: Is a directory\n")
        except OSError:
            errors.append(f"{name}: {path}: No such file or directory\n")
    return sources, "".join(errors)


def split_lines(text: str) -> list[str]:
    """Split text into lines, ignoring one trailing newline."""
    return text.splitlines()


def join_lines(lines: list[str]) -> str:
    """Join lines with a newline after each (empty input stays empty)."""
    return "".join(f"{line}\n" for line in lines)


def split_flags(args: list[str], known: str) -> tuple[set[str], list[str]]:
    """Separate single-letter flags (``-la`` → ``{"l", "a"}``) from operands.

    Flag parsing stops at ``--`` or the first word that is not made of
    *known* letters, which keeps ``-5`` or ``-`` as operands.
    """
    flags: set[str] = set()
    index = 0
    while index < len(args):
        arg = args[index]
        if arg == "--":
            index += 1
            break
        if len(arg) < 2 or not arg.startswith("-") or not set(arg[1:]) <= set(known):  # noqa: PLR2004
            break
        flags.update(arg[1:])
        index += 1
    return flags, args[index:]
