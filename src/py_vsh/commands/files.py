"""File commands — ls, mkdir, touch, rm, cp, mv, pwd.

These are thin wrappers over the ``FileSystem`` protocol.  Errors from
the filesystem arrive as builtin ``OSError`` subclasses and are turned
into coreutils-style messages here.
"""

from __future__ import annotations

import stat
import time
from typing import TYPE_CHECKING

from py_vsh.commands.common import join_lines, split_flags
from py_vsh.types import ExecResult

if TYPE_CHECKING:
    from py_vsh.fs.interface import FsStat
    from py_vsh.types import CommandContext, CommandHandler

_LS_TROUBLE = 2


def _describe(error: OSError) -> str:
    """Return the human-readable reason carried by a filesystem error."""
    return error.strerror or str(error)


def _long_line(name: str, info: FsStat) -> str:
    """Format one ``ls -l`` row."""
    file_type = stat.S_IFDIR if info.is_directory else stat.S_IFREG
    mode = stat.filemode(file_type | info.mode)
    stamp = time.strftime("%b %e %H:%M", time.localtime(info.mtime))
    suffix = "/" if info.is_directory else ""
    return f"{mode} 1 user user {info.size:>5} {stamp} {name}{suffix}"


async def _cmd_ls(args: list[str], ctx: CommandContext) -> ExecResult:
    """List directory contents.

    ``-a`` includes hidden entries plus ``.`` and ``..``, ``-l`` uses the
    long format, and ``-1`` is accepted (one entry per line is the only
    layout).  Several operands are listed under ``NAME:`` headers.
    """
    flags, operands = split_flags(args, "al1")
    targets = operands or ["."]
    errors: list[str] = []
    files: list[str] = []
    directories: list[str] = []
    for target in targets:
        try:
            info = await ctx.fs.stat(ctx.resolve(target))
        except OSError:
            errors.append(f"ls: {target}: No such file or directory\n")
            continue
        if info.is_directory:
            directories.append(target)
        elif "l" in flags:
            files.append(_long_line(target, info))
        else:
            files.append(target)

    blocks: list[str] = [join_lines(files)] if files else []
    for target in directories:
        path = ctx.resolve(target)
        names = await ctx.fs.readdir(path)
        if "a" in flags:
            names = [".", "..", *names]
        else:
            names = [name for name in names if not name.startswith(".")]
        if "l" in flags:
            lines: list[str] = []
            for name in names:
                entry = path if name in (".", "..") else ctx.fs.resolve_path(path, name)
                lines.append(_long_line(name, await ctx.fs.stat(entry)))
        else:
            lines = names
        header = f"{target}:\n" if len(targets) > 1 else ""
        blocks.append(header + join_lines(lines))
    return ExecResult("\n".join(blocks), "".join(errors), _LS_TROUBLE if errors else 0)


async def _cmd_mkdir(args: list[str], ctx: CommandContext) -> ExecResult:
    """Create directories (``-p`` creates parents, existing is fine)."""
    flags, paths = split_flags(args, "p")
    if not paths:
        return ExecResult.failure("mkdir: missing operand\n")
    errors: list[str] = []
    for path in paths:
        try:
            await ctx.fs.mkdir(ctx.resolve(path), recursive="p" in flags)
        except FileExistsError:
            errors.append(f"mkdir: cannot create directory '{path}': File exists\n")
        except OSError as e:
            errors.append(f"mkdir: cannot create directory '{path}': {_describe(e)}\n")
    return ExecResult(stderr="".join(errors), exit_code=1 if errors else 0)


async def _cmd_touch(args: list[str], ctx: CommandContext) -> ExecResult:
    """Create empty files, or bump the modification time of existing ones."""
    if not args:
        return ExecResult.failure("touch: missing file operand\n")
    errors: list[str] = []
    for path in args:
        try:
            await ctx.fs.append_file(ctx.resolve(path), "")
        except IsADirectoryError:
            continue
        except OSError as e:
            errors.append(f"touch: cannot touch '{path}': {_describe(e)}\n")
    return ExecResult(stderr="".join(errors), exit_code=1 if errors else 0)


async def _cmd_rm(args: list[str], ctx: CommandContext) -> ExecResult:
    """Remove files (``-r``/``-R`` for directories, ``-f`` ignores missing)."""
    flags, paths = split_flags(args, "rRf")
    recursive = bool(flags & {"r", "R"})
    force = "f" in flags
    if not paths:
        return ExecResult() if force else ExecResult.failure("rm: missing operand\n")
    errors: list[str] = []
    for path in paths:
        resolved = ctx.resolve(path)
        try:
            info = await ctx.fs.stat(resolved)
        except FileNotFoundError:
            if not force:
                errors.append(f"rm: cannot remove '{path}': No such file or directory\n")
            continue
        if info.is_directory and not recursive:
            errors.append(f"rm: cannot remove '{path}': Is a directory\n")
            continue
        try:
            await ctx.fs.rm(resolved, recursive=recursive, force=force)
        except OSError as e:
            errors.append(f"rm: cannot remove '{path}': {_describe(e)}\n")
    return ExecResult(stderr="".join(errors), exit_code=1 if errors else 0)


async def _destination(ctx: CommandContext, source: str, dest: str) -> str:
    """Resolve *dest*, descending into it when it is an existing directory."""
    resolved = ctx.resolve(dest)
    if await ctx.fs.exists(resolved) and (await ctx.fs.stat(resolved)).is_directory:
        return ctx.fs.resolve_path(resolved, source.rstrip("/").rsplit("/", 1)[-1])
    return resolved


async def _copy_or_move(name: str, args: list[str], ctx: CommandContext) -> ExecResult:
    flags, operands = split_flags(args, "rR" if name == "cp" else "f")
    if len(operands) < 2:  # noqa: PLR2004
        return ExecResult.failure(f"{name}: missing file operand\n")
    *sources, dest = operands
    errors: list[str] = []
    for source in sources:
        try:
            target = await _destination(ctx, source, dest)
            if name == "cp":
                await ctx.fs.cp(ctx.resolve(source), target, recursive=bool(flags))
            else:
                await ctx.fs.mv(ctx.resolve(source), target)
        except IsADirectoryError:
            if name == "cp":
                errors.append(f"cp: -r not specified; omitting directory '{source}'\n")
            else:
                errors.append(f"mv: cannot overwrite directory '{dest}'\n")
        except FileNotFoundError:
            errors.append(f"{name}: cannot stat '{source}': No such file or directory\n")
        except OSError as e:
            verb = "copy" if name == "cp" else "move"
            errors.append(f"{name}: cannot {verb} '{source}': {_describe(e)}\n")
    return ExecResult(stderr="".join(errors), exit_code=1 if errors else 0)


async def _cmd_cp(args: list[str], ctx: CommandContext) -> ExecResult:
    """Copy files; ``-r`` copies directories."""
    return await _copy_or_move("cp", args, ctx)


async def _cmd_mv(args: list[str], ctx: CommandContext) -> ExecResult:
    """Move or rename files and directories."""
    return await _copy_or_move("mv", args, ctx)


async def _cmd_pwd(_args: list[str], ctx: CommandContext) -> ExecResult:
    return ExecResult(stdout=f"{ctx.cwd}\n")


FILE_COMMANDS: dict[str, CommandHandler] = {
    "ls": _cmd_ls,
    "mkdir": _cmd_mkdir,
    "touch": _cmd_touch,
    "rm": _cmd_rm,
    "cp": _cmd_cp,
    "mv": _cmd_mv,
    "pwd": _cmd_pwd,
}
