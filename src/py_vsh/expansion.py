"""Expanders — variables, tilde, and filename globs.

Expansion runs at execution time, word by word, on the segments the
lexer produced:

- **Variables** expand in unquoted and double-quoted segments, never in
  single-quoted ones::

      $NAME  ${NAME}  ${NAME:-default}  ${#NAME}
      $0 .. $9   $@  $#  $$  $?  $!  $*

  An unset name expands to the empty string.  ``${NAME:-default}``
  uses *default* only when NAME is unset; a variable set to the empty
  string stays empty.

- **Tilde**: an unquoted ``~`` at the start of a word (alone or before
  ``/``) becomes ``$HOME``.

- **Globs**: a fully unquoted word containing ``*``, ``?`` or ``[`` is
  matched against every path the filesystem knows.  Wildcards never
  cross ``/`` and never match a leading ``.``.  No match leaves the
  word as typed.

There is no field splitting for command arguments: ``$X`` holding
``"a b"`` stays one argument.  ``for`` loops are the exception and
call ``split_fields`` explicitly.
"""

from __future__ import annotations

import posixpath
import re
from typing import TYPE_CHECKING

from py_vsh.lexer import Quoting, Word

if TYPE_CHECKING:
    from collections.abc import Mapping

    from py_vsh.fs.interface import FileSystem

_GLOB_CHARS = frozenset("*?[")
_SPECIAL_PARAMETERS = frozenset("@#$?!*")
_NAME_START = re.compile(r"[A-Za-z_]")
_NAME_CHARS = re.compile(r"[A-Za-z0-9_]*")

# Values for parameters a real shell always has.
_PARAMETER_DEFAULTS: dict[str, str] = {"$": "1", "0": "bash", "#": "0"}


def lookup(name: str, env: Mapping[str, str], *, last_exit_code: int = 0) -> str | None:
    """Return the value of *name*, or ``None`` when it is unset.

    ``$?`` comes from *last_exit_code*; ``$$``, ``$0`` and ``$#`` fall
    back to fixed defaults when the environment does not define them.
    """
    if name == "?":
        return str(last_exit_code)
    if name in env:
        return env[name]
    return _PARAMETER_DEFAULTS.get(name)


def expand_variables(text: str, env: Mapping[str, str], *, last_exit_code: int = 0) -> str:
    """Replace every ``$`` reference in *text* with its value.

    Args:
        text: Unquoted or double-quoted source text.
        env: Variables visible to the expansion.
        last_exit_code: The value of ``$?``.

    Returns:
        The expanded text.  Malformed references (a lone ``$``, an
        unclosed ``${``) are kept literally.

    """
    out: list[str] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch != "$" or i + 1 >= len(text):
            out.append(ch)
            i += 1
            continue
        nxt = text[i + 1]
        if nxt == "{":
            close = text.find("}", i + 2)
            if close == -1:
                out.append(text[i:])
                break
            out.append(_expand_braced(text[i + 2 : close], env, last_exit_code))
            i = close + 1
        elif _NAME_START.match(nxt):
            match = _NAME_CHARS.match(text, i + 1)
            assert match is not None  # noqa: S101
            out.append(lookup(match.group(), env, last_exit_code=last_exit_code) or "")
            i = match.end()
        elif nxt.isdigit() or nxt in _SPECIAL_PARAMETERS:
            out.append(lookup(nxt, env, last_exit_code=last_exit_code) or "")
            i += 2
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def _expand_braced(inner: str, env: Mapping[str, str], last_exit_code: int) -> str:
    if inner.startswith("#") and len(inner) > 1:
        return str(len(lookup(inner[1:], env, last_exit_code=last_exit_code) or ""))
    name, sep, default = inner.partition(":-")
    value = lookup(name, env, last_exit_code=last_exit_code)
    if value is None and sep:
        return default
    return value or ""


def expand_tilde(text: str, home: str) -> str:
    """Replace a leading ``~`` (alone or before ``/``) with *home*."""
    if text == "~" or text.startswith("~/"):
        return home + text[1:]
    return text


def expand_word(word: Word, env: Mapping[str, str], *, last_exit_code: int = 0) -> str:
    """Expand one word to a single string (no globbing, no splitting)."""
    parts: list[str] = []
    for index, segment in enumerate(word.segments):
        if segment.quoting is Quoting.SINGLE:
            parts.append(segment.text)
            continue
        text = segment.text
        if index == 0 and segment.quoting is Quoting.UNQUOTED:
            text = expand_tilde(text, env.get("HOME", "/"))
        parts.append(expand_variables(text, env, last_exit_code=last_exit_code))
    return "".join(parts)


def has_glob(text: str) -> bool:
    """Return True if *text* contains a glob metacharacter."""
    return any(ch in _GLOB_CHARS for ch in text)


def split_fields(text: str) -> list[str]:
    """Split expanded text on runs of whitespace."""
    return text.split()


# -- globbing ---------------------------------------------------------------


def _segment_regex(segment: str) -> str:
    """Translate one ``/``-free glob component into a regex fragment."""
    out: list[str] = []
    if segment[:1] in _GLOB_CHARS:
        out.append(r"(?!\.)")
    i = 0
    while i < len(segment):
        ch = segment[i]
        if ch == "*":
            out.append("[^/]*")
        elif ch == "?":
            out.append("[^/]")
        elif ch == "[":
            j = i + 1
            if segment[j : j + 1] in ("!", "^"):
                j += 1
            if segment[j : j + 1] == "]":
                j += 1
            close = segment.find("]", j)
            if close == -1:
                out.append(re.escape(ch))
            else:
                out.append(_class_regex(segment[i + 1 : close]))
                i = close
        else:
            out.append(re.escape(ch))
        i += 1
    return "".join(out)


def _class_regex(body: str) -> str:
    negate = body[:1] in ("!", "^")
    if negate:
        body = body[1:]
    body = body.replace("\\", "\\\\").replace("[", "\\[")
    if negate:
        return f"[^/{body}]"
    if body.startswith("^"):
        body = "\\" + body
    return f"[{body}]"


def compile_glob(pattern: str) -> re.Pattern[str]:
    """Compile an absolute glob pattern into an anchored regex."""
    return re.compile("/".join(_segment_regex(part) for part in pattern.split("/")) + r"\Z")


def glob(pattern: str, fs: FileSystem, cwd: str) -> list[str]:
    """Expand *pattern* against the filesystem.

    Args:
        pattern: The word, already variable-expanded.
        fs: Source of the path set.
        cwd: Directory relative patterns are resolved against.

    Returns:
        Sorted matches (relative when *pattern* is relative), or
        ``[pattern]`` when nothing matches or the pattern cannot match
        anything (an inverted range such as ``[z-a]``).

    """
    if not has_glob(pattern):
        return [pattern]
    try:
        regex = compile_glob(fs.resolve_path(cwd, pattern))
    except re.error:
        return [pattern]
    matches = sorted(path for path in fs.get_all_paths() if path != "/" and regex.match(path))
    if not matches:
        return [pattern]
    if pattern.startswith("/"):
        return matches
    relative = [posixpath.relpath(path, cwd) for path in matches]
    if pattern.startswith("./"):
        return [f"./{path}" for path in relative]
    return relative


def expand_argument(
    word: Word,
    env: Mapping[str, str],
    fs: FileSystem,
    cwd: str,
    *,
    last_exit_code: int = 0,
) -> list[str]:
    """Expand a command argument: variables and tilde, then globs if unquoted."""
    text = expand_word(word, env, last_exit_code=last_exit_code)
    if word.quoted:
        return [text]
    return glob(text, fs, cwd)


def expand_list_item(
    word: Word,
    env: Mapping[str, str],
    fs: FileSystem,
    cwd: str,
    *,
    last_exit_code: int = 0,
) -> list[str]:
    """Expand a ``for`` list word: unquoted results are split and globbed."""
    text = expand_word(word, env, last_exit_code=last_exit_code)
    if word.quoted:
        return [text]
    return [match for field in split_fields(text) for match in glob(field, fs, cwd)]
