"""Text commands — echo and the classic line filters.

Every filter reads its file operands, or stdin when there are none,
through ``read_sources`` and returns the usual coreutils exit codes
(``grep``: 0 match, 1 no match, 2 trouble).
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from py_vsh.commands.common import join_lines, read_sources, split_flags, split_lines
from py_vsh.types import ExecResult

if TYPE_CHECKING:
    from py_vsh.types import CommandContext, CommandHandler

_DEFAULT_LINES = 10
_GREP_TROUBLE = 2

_ECHO_ESCAPES: dict[str, str] = {
    "\\": "\\",
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "v": "\v",
}
_ESCAPE_PATTERN = re.compile(r"\\(.)", re.DOTALL)


async def _cmd_echo(args: list[str], _ctx: CommandContext) -> ExecResult:
    """Print arguments separated by spaces (``-n``, ``-e``, ``-E``)."""
    newline = True
    escapes = False
    index = 0
    while index < len(args) and re.fullmatch(r"-[neE]+", args[index]):
        for flag in args[index][1:]:
            if flag == "n":
                newline = False
            else:
                escapes = flag == "e"
        index += 1
    output = " ".join(args[index:])
    if escapes:
        output = _ESCAPE_PATTERN.sub(
            lambda m: _ECHO_ESCAPES.get(m.group(1), m.group(0)), output
        )
    return ExecResult(stdout=output + ("\n" if newline else ""))


async def _cmd_cat(args: list[str], ctx: CommandContext) -> ExecResult:
    """Concatenate files (or stdin); ``-n`` numbers the lines."""
    flags, paths = split_flags(args, "n")
    sources, errors = await read_sources("cat", paths, ctx)
    output = "".join(source.content for source in sources)
    if "n" in flags:
        output = join_lines(
            [f"{number:>6}\t{line}" for number, line in enumerate(split_lines(output), 1)]
        )
    return ExecResult(output, errors, 1 if errors else 0)


def _parse_count(name: str, args: list[str]) -> tuple[int, list[str]]:
    """Extract ``-n N``, ``-nN`` or ``-N`` from head/tail arguments.

    Raises:
        ValueError: If the count is not a non-negative integer.

    """
    count = _DEFAULT_LINES
    paths: list[str] = []
    index = 0
    while index < len(args):
        arg = args[index]
        if arg == "-n" and index + 1 < len(args):
            count_text = args[index + 1]
            index += 1
        elif arg.startswith("-n"):
            count_text = arg[2:]
        elif re.fullmatch(r"-\d+", arg):
            count_text = arg[1:]
        else:
            paths.append(arg)
            index += 1
            continue
        if not count_text.isdigit():
            msg = f"{name}: invalid number of lines: '{count_text}'"
            raise ValueError(msg)
        count = int(count_text)
        index += 1
    return count, paths


async def _head_or_tail(name: str, args: list[str], ctx: CommandContext) -> ExecResult:
    try:
        count, paths = _parse_count(name, args)
    except ValueError as e:
        return ExecResult.failure(f"{e}\n")
    sources, errors = await read_sources(name, paths, ctx)
    chunks: list[str] = []
    for number, source in enumerate(sources):
        if len(sources) > 1:
            chunks.append(f"{'' if number == 0 else chr(10)}==> {source.label} <==\n")
        lines = source.content.splitlines(keepends=True)
        selected = lines[:count] if name == "head" else lines[len(lines) - count :]
        text = "".join(selected)
        chunks.append(text if not text or text.endswith("\n") else text + "\n")
    return ExecResult("".join(chunks), errors, 1 if errors else 0)


async def _cmd_head(args: list[str], ctx: CommandContext) -> ExecResult:
    """Print the first lines of each input."""
    return await _head_or_tail("head", args, ctx)


async def _cmd_tail(args: list[str], ctx: CommandContext) -> ExecResult:
    """Print the last lines of each input."""
    return await _head_or_tail("tail", args, ctx)


async def _cmd_wc(args: list[str], ctx: CommandContext) -> ExecResult:
    """Count lines, words, and bytes (``-l``, ``-w``, ``-c``)."""
    flags, paths = split_flags(args, "lwc")
    selected = [flag for flag in "lwc" if flag in flags] or ["l", "w", "c"]
    sources, errors = await read_sources("wc", paths, ctx)

    def _counts(text: str) -> dict[str, int]:
        return {"l": text.count("\n"), "w": len(text.split()), "c": len(text.encode())}

    rows: list[tuple[list[int], str]] = []
    totals = dict.fromkeys("lwc", 0)
    for source in sources:
        counts = _counts(source.content)
        for key in totals:
            totals[key] += counts[key]
        rows.append(([counts[flag] for flag in selected], "" if not paths else source.label))
    if len(sources) > 1:
        rows.append(([totals[flag] for flag in selected], "total"))

    def _format(values: list[int], label: str) -> str:
        if len(values) == 1:
            columns = str(values[0])
        else:
            columns = " ".join(f"{value:>7}" for value in values)
        return f"{columns} {label}".rstrip() if label else columns

    output = join_lines([_format(values, label) for values, label in rows])
    return ExecResult(output, errors, 1 if errors else 0)


async def _cmd_grep(args: list[str], ctx: CommandContext) -> ExecResult:
    """Print lines matching a regular expression.

    Flags: ``-i`` ignore case, ``-v`` invert, ``-n`` line numbers,
    ``-c`` count, ``-q`` quiet, ``-l`` file names only, ``-F`` fixed
    string, ``-E`` extended regex (Python syntax either way), and
    ``-e PATTERN``.
    """
    patterns: list[str] = []
    rest: list[str] = []
    index = 0
    while index < len(args):
        if args[index] == "-e" and index + 1 < len(args):
            patterns.append(args[index + 1])
            index += 2
        else:
            rest.append(args[index])
            index += 1
    flags, operands = split_flags(rest, "ivncqlFEw")
    if not patterns:
        if not operands:
            return ExecResult.failure("grep: missing pattern\n", _GREP_TROUBLE)
        patterns, operands = [operands[0]], operands[1:]

    sources_text = [re.escape(p) if "F" in flags else p for p in patterns]
    if "w" in flags:
        sources_text = [rf"\b(?:{p})\b" for p in sources_text]
    try:
        regex = re.compile("|".join(sources_text), re.IGNORECASE if "i" in flags else 0)
    except re.error:
        return ExecResult.failure(
            f"grep: invalid regular expression: {patterns[0]}\n", _GREP_TROUBLE
        )

    sources, errors = await read_sources("grep", operands, ctx)
    prefix_names = len(operands) > 1
    invert = "v" in flags
    output: list[str] = []
    matched_any = False
    for source in sources:
        hits = [
            (number, line)
            for number, line in enumerate(split_lines(source.content), 1)
            if (regex.search(line) is not None) != invert
        ]
        matched_any = matched_any or bool(hits)
        if "q" in flags:
            continue
        if "l" in flags:
            if hits:
                output.append(source.label)
            continue
        prefix = f"{source.label}:" if prefix_names else ""
        if "c" in flags:
            output.append(f"{prefix}{len(hits)}")
            continue
        for number, line in hits:
            output.append(f"{prefix}{number}:{line}" if "n" in flags else f"{prefix}{line}")

    if "q" in flags and matched_any:
        return ExecResult()
    code = _GREP_TROUBLE if errors else 0 if matched_any else 1
    return ExecResult(join_lines(output), errors, code)


def _numeric_key(line: str) -> float:
    match = re.match(r"\s*-?\d+(?:\.\d+)?", line)
    return float(match.group()) if match else 0.0


async def _cmd_sort(args: list[str], ctx: CommandContext) -> ExecResult:
    """Sort lines (``-r`` reverse, ``-n`` numeric, ``-u`` unique)."""
    flags, paths = split_flags(args, "rnu")
    sources, errors = await read_sources("sort", paths, ctx)
    lines = [line for source in sources for line in split_lines(source.content)]
    if "n" in flags:
        lines.sort(key=lambda line: (_numeric_key(line), line), reverse="r" in flags)
    else:
        lines.sort(reverse="r" in flags)
    if "u" in flags:
        lines = list(dict.fromkeys(lines))
    return ExecResult(join_lines(lines), errors, 1 if errors else 0)


async def _cmd_uniq(args: list[str], ctx: CommandContext) -> ExecResult:
    """Collapse adjacent duplicate lines (``-c`` prefixes counts)."""
    flags, paths = split_flags(args, "c")
    sources, errors = await read_sources("uniq", paths[:1], ctx)
    groups: list[list[str | int]] = []
    for source in sources:
        for line in split_lines(source.content):
            if groups and groups[-1][0] == line:
                groups[-1][1] = int(groups[-1][1]) + 1
            else:
                groups.append([line, 1])
    if "c" in flags:
        lines = [f"{count:>7} {line}" for line, count in groups]
    else:
        lines = [str(line) for line, _ in groups]
    return ExecResult(join_lines(lines), errors, 1 if errors else 0)


def _expand_set(text: str) -> str:
    """Expand a ``tr`` set: ranges like ``a-z`` and ``\\n``/``\\t`` escapes."""
    chars: list[str] = []
    index = 0
    while index < len(text):
        ch = text[index]
        if ch == "\\" and index + 1 < len(text):
            chars.append({"n": "\n", "t": "\t", "r": "\r"}.get(text[index + 1], text[index + 1]))
            index += 2
        elif index + 2 < len(text) and text[index + 1] == "-":
            chars.extend(chr(code) for code in range(ord(ch), ord(text[index + 2]) + 1))
            index += 3
        else:
            chars.append(ch)
            index += 1
    return "".join(chars)


async def _cmd_tr(args: list[str], ctx: CommandContext) -> ExecResult:
    """Translate or delete (``-d``) characters from stdin."""
    flags, sets = split_flags(args, "d")
    if not sets:
        return ExecResult.failure("tr: missing operand\n")
    source = _expand_set(sets[0])
    if "d" in flags:
        return ExecResult(stdout=ctx.stdin.translate(str.maketrans("", "", source)))
    if len(sets) < 2:  # noqa: PLR2004
        return ExecResult.failure("tr: missing operand after SET1\n")
    target = _expand_set(sets[1])
    if not target:
        return ExecResult.failure("tr: when not truncating set1, string2 must be non-empty\n")
    target = target.ljust(len(source), target[-1])[: len(source)]
    return ExecResult(stdout=ctx.stdin.translate(str.maketrans(source, target)))


async def _cmd_seq(args: list[str], _ctx: CommandContext) -> ExecResult:
    """Print a sequence: ``seq LAST``, ``seq FIRST LAST``, ``seq FIRST STEP LAST``."""
    if not args or len(args) > 3:  # noqa: PLR2004
        return ExecResult.failure("seq: missing operand\n" if not args else "seq: extra operand\n")
    try:
        numbers = [int(arg) for arg in args]
    except ValueError:
        bad = next(arg for arg in args if not re.fullmatch(r"-?\d+", arg))
        return ExecResult.failure(f"seq: invalid integer argument: '{bad}'\n")
    first, step, last = 1, 1, numbers[-1]
    if len(numbers) >= 2:  # noqa: PLR2004
        first = numbers[0]
    if len(numbers) == 3:  # noqa: PLR2004
        step = numbers[1]
    if step == 0:
        return ExecResult.failure("seq: invalid Zero increment value: '0'\n")
    stop = last + (1 if step > 0 else -1)
    return ExecResult(stdout=join_lines([str(n) for n in range(first, stop, step)]))


TEXT_COMMANDS: dict[str, CommandHandler] = {
    "echo": _cmd_echo,
    "cat": _cmd_cat,
    "head": _cmd_head,
    "tail": _cmd_tail,
    "wc": _cmd_wc,
    "grep": _cmd_grep,
    "sort": _cmd_sort,
    "uniq": _cmd_uniq,
    "tr": _cmd_tr,
    "seq": _cmd_seq,
}
