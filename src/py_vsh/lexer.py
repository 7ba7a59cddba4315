"""Tokenizer — turn one raw line into words and operators.

A shell line is not split on whitespace alone.  Quotes glue text
together (``"a b"`` is one word), backslashes escape single characters,
and operators such as ``|``, ``&&`` and ``2>&1`` separate words even
with no space around them (``echo hi>out`` is three tokens).

Each word remembers *how* each of its pieces was quoted, because the
later expansion stages care: variables expand in unquoted and
double-quoted text but never in single-quoted text, and globs only
expand in fully unquoted words.  So a word is a list of ``Segment``
objects rather than a flat string::

    "$HOME"'/*'x   →  Word([Segment("$HOME", DOUBLE),
                            Segment("/*", SINGLE),
                            Segment("x", UNQUOTED)])

Rules:
    - Single quotes suppress everything until the next ``'``.
    - Double quotes allow ``$`` expansion; inside them only
      ``\\"``, ``\\\\``, ``\\$`` and ``\\``` are escapes.
    - Outside quotes a backslash makes the next character literal; a
      backslash before a newline joins the two lines.
    - An unquoted ``#`` at the start of a word begins a comment.
    - Two-character lookahead separates ``|`` from ``||``, ``>`` from
      ``>>``, and ``&&`` from a literal ``&``.
    - An unterminated quote raises ``ShellSyntaxError``; a trailing
      backslash is kept as a literal ``\\``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TypeAlias

from py_vsh.errors import ShellSyntaxError

_BLANKS = frozenset(" \t")
_DOUBLE_QUOTE_ESCAPES = frozenset('"\\$`')


class Quoting(StrEnum):
    """How a piece of a word was quoted in the source."""

    UNQUOTED = "unquoted"
    SINGLE = "single"
    DOUBLE = "double"


class OperatorKind(StrEnum):
    """Every control and redirection operator the tokenizer produces."""

    PIPE = "|"
    OR = "||"
    AND = "&&"
    SEMI = ";"
    NEWLINE = "\n"
    LPAREN = "("
    RPAREN = ")"
    REDIRECT_OUT = ">"
    REDIRECT_APPEND = ">>"
    REDIRECT_IN = "<"
    REDIRECT_ERR = "2>"
    REDIRECT_ERR_APPEND = "2>>"
    ERR_TO_OUT = "2>&1"
    OUT_TO_ERR = ">&2"


REDIRECT_KINDS: frozenset[OperatorKind] = frozenset(
    {
        OperatorKind.REDIRECT_OUT,
        OperatorKind.REDIRECT_APPEND,
        OperatorKind.REDIRECT_IN,
        OperatorKind.REDIRECT_ERR,
        OperatorKind.REDIRECT_ERR_APPEND,
        OperatorKind.ERR_TO_OUT,
        OperatorKind.OUT_TO_ERR,
    }
)

# Longest match first so ">>" wins over ">".
_OPERATORS: list[tuple[str, OperatorKind]] = [
    (">&2", OperatorKind.OUT_TO_ERR),
    (">>", OperatorKind.REDIRECT_APPEND),
    ("||", OperatorKind.OR),
    ("&&", OperatorKind.AND),
    (">", OperatorKind.REDIRECT_OUT),
    ("<", OperatorKind.REDIRECT_IN),
    ("|", OperatorKind.PIPE),
    (";", OperatorKind.SEMI),
    ("\n", OperatorKind.NEWLINE),
    ("(", OperatorKind.LPAREN),
    (")", OperatorKind.RPAREN),
]

# File-descriptor prefixed forms, only recognised at the start of a word.
_FD_OPERATORS: list[tuple[str, OperatorKind]] = [
    ("2>&1", OperatorKind.ERR_TO_OUT),
    ("1>&2", OperatorKind.OUT_TO_ERR),
    ("2>>", OperatorKind.REDIRECT_ERR_APPEND),
    ("1>>", OperatorKind.REDIRECT_APPEND),
    ("2>", OperatorKind.REDIRECT_ERR),
    ("1>", OperatorKind.REDIRECT_OUT),
]


@dataclass(frozen=True)
class Segment:
    """One contiguous, uniformly quoted fragment of a word."""

    text: str
    quoting: Quoting


@dataclass(frozen=True)
class Word:
    """A word token: adjacent segments with no whitespace between them.

    Attributes:
        segments: The fragments, in source order.
        start: Offset of the first character in the source line.
        end: Offset just past the last character.

    """

    segments: tuple[Segment, ...]
    start: int
    end: int

    @property
    def text(self) -> str:
        """Return the word with quotes removed and no expansion applied."""
        return "".join(seg.text for seg in self.segments)

    @property
    def quoted(self) -> bool:
        """Return True if any part of the word was quoted or escaped."""
        return any(seg.quoting is not Quoting.UNQUOTED for seg in self.segments)

    @property
    def quoting(self) -> Quoting:
        """Classify the word as a whole.

        ``UNQUOTED`` when nothing was quoted, ``SINGLE`` when every
        quoted part was single-quoted, ``DOUBLE`` otherwise.
        """
        kinds = {seg.quoting for seg in self.segments} - {Quoting.UNQUOTED}
        if not kinds:
            return Quoting.UNQUOTED
        if kinds == {Quoting.SINGLE}:
            return Quoting.SINGLE
        return Quoting.DOUBLE

    def is_bare(self, *names: str) -> bool:
        """Return True if the word is unquoted and spells one of *names*."""
        return not self.quoted and self.text in names


@dataclass(frozen=True)
class Operator:
    """An operator token with its source offsets."""

    kind: OperatorKind
    start: int
    end: int

    @property
    def text(self) -> str:
        """Return the canonical spelling of the operator."""
        return self.kind.value


Token: TypeAlias = Word | Operator


def tokenize(line: str) -> list[Token]:
    """Split *line* into word and operator tokens.

    Args:
        line: Raw shell input (may span several lines).

    Returns:
        The tokens in source order.

    Raises:
        ShellSyntaxError: If a quote is never closed.

    """
    return _Lexer(line).run()


class _Lexer:
    """Single-pass character scanner that builds tokens."""

    def __init__(self, line: str) -> None:
        self._line = line
        self._pos = 0
        self._tokens: list[Token] = []
        self._segments: list[Segment] = []
        self._plain: list[str] = []
        self._word_start: int | None = None

    def run(self) -> list[Token]:
        line = self._line
        while self._pos < len(line):
            ch = line[self._pos]
            if ch in _BLANKS:
                self._end_word()
                self._pos += 1
            elif ch == "\\":
                self._read_escape()
            elif ch == "'":
                self._read_single()
            elif ch == '"':
                self._read_double()
            elif ch == "#" and self._word_start is None:
                newline = line.find("\n", self._pos)
                self._pos = len(line) if newline == -1 else newline
            elif line.startswith("${", self._pos) and "}" in line[self._pos :]:
                # ${NAME:-a b} stays one word, spaces included.
                self._mark_start()
                close = line.index("}", self._pos)
                self._plain.append(line[self._pos : close + 1])
                self._pos = close + 1
            elif not self._read_operator():
                self._mark_start()
                self._plain.append(ch)
                self._pos += 1
        self._end_word()
        return self._tokens

    # -- word building -------------------------------------------------------

    def _mark_start(self) -> None:
        if self._word_start is None:
            self._word_start = self._pos

    def _flush_plain(self) -> None:
        if self._plain:
            self._segments.append(Segment("".join(self._plain), Quoting.UNQUOTED))
            self._plain.clear()

    def _push(self, text: str, quoting: Quoting) -> None:
        self._flush_plain()
        self._segments.append(Segment(text, quoting))

    def _end_word(self) -> None:
        if self._word_start is None:
            return
        self._flush_plain()
        self._tokens.append(Word(tuple(self._segments), self._word_start, self._pos))
        self._segments = []
        self._word_start = None

    # -- scanners --------------------------------------------------------------

    def _read_escape(self) -> None:
        nxt = self._line[self._pos + 1 : self._pos + 2]
        if nxt == "\n":
            self._pos += 2
            return
        self._mark_start()
        if not nxt:
            self._push("\\", Quoting.SINGLE)
            self._pos += 1
            return
        self._push(nxt, Quoting.SINGLE)
        self._pos += 2

    def _read_single(self) -> None:
        self._mark_start()
        close = self._line.find("'", self._pos + 1)
        if close == -1:
            msg = "unexpected EOF while looking for matching `''"
            raise ShellSyntaxError(msg)
        self._push(self._line[self._pos + 1 : close], Quoting.SINGLE)
        self._pos = close + 1

    def _read_double(self) -> None:
        self._mark_start()
        line = self._line
        self._pos += 1
        buf: list[str] = []
        while True:
            if self._pos >= len(line):
                msg = "unexpected EOF while looking for matching `\"'"
                raise ShellSyntaxError(msg)
            ch = line[self._pos]
            if ch == '"':
                self._pos += 1
                break
            nxt = line[self._pos + 1 : self._pos + 2]
            if ch == "\\" and nxt == "\n":
                self._pos += 2
            elif ch == "\\" and nxt in _DOUBLE_QUOTE_ESCAPES:
                self._push("".join(buf), Quoting.DOUBLE)
                buf.clear()
                self._push(nxt, Quoting.SINGLE)
                self._pos += 2
            else:
                buf.append(ch)
                self._pos += 1
        self._push("".join(buf), Quoting.DOUBLE)

    def _read_operator(self) -> bool:
        line = self._line
        table = _OPERATORS
        if self._word_start is None and line[self._pos] in "12":
            table = _FD_OPERATORS + _OPERATORS
        for spelling, kind in table:
            if line.startswith(spelling, self._pos):
                self._end_word()
                end = self._pos + len(spelling)
                self._tokens.append(Operator(kind, self._pos, end))
                self._pos = end
                return True
        return False
