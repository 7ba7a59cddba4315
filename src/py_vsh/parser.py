"""Statement parser — resolve one line into a single ``ParsedStatement``.

The parser works on the token list from ``py_vsh.lexer`` and decides,
once per line, what kind of statement it is looking at:

- ``PipelineStatement`` — ordinary commands joined by ``|``, ``&&``,
  ``||``, ``;`` and newlines.
- ``IfStatement``, ``ForStatement``, ``WhileStatement``,
  ``UntilStatement`` — compound statements.  Their conditions and
  bodies are kept as *source text* and parsed again when the engine
  runs them, one nested ``exec`` at a time.
- ``FunctionDef`` — ``function NAME { ... }`` or ``NAME() { ... }``.

A keyword only counts when it is an unquoted word in *command
position*: at the start of the line, after a separator, or after
another keyword that introduces a command (``then``, ``do``, ...).
``echo if`` therefore prints ``if``.

Nesting is matched with a keyword stack, so the ``fi`` of an inner
``if`` never closes the outer one::

    if a; then if b; then c; fi; fi
    ^          ^             ^    ^
    push fi    push fi       pop  close

Anything left on the line after a compound statement (``done; echo
end``) is returned as a ``Tail`` and executed by the engine after the
statement, gated by its joining operator.

Grammar errors raise ``ShellSyntaxError`` with bash's wording; the
engine reports them with exit code 2.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import TypeAlias

from py_vsh.errors import ShellSyntaxError
from py_vsh.lexer import REDIRECT_KINDS, Operator, OperatorKind, Token, Word, tokenize

NAME_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*\Z")

# Operators after which the next word is a command name.
_COMMAND_STARTERS: frozenset[OperatorKind] = frozenset(
    {
        OperatorKind.SEMI,
        OperatorKind.NEWLINE,
        OperatorKind.AND,
        OperatorKind.OR,
        OperatorKind.PIPE,
        OperatorKind.LPAREN,
        OperatorKind.RPAREN,
    }
)

# Keywords after which the next word is a command name.
_COMMAND_PREFIXES = frozenset({"if", "then", "elif", "else", "do", "while", "until", "{", "!"})

# Opening keyword → the keyword that closes it.
_OPENERS: dict[str, str] = {
    "if": "fi",
    "for": "done",
    "while": "done",
    "until": "done",
    "{": "}",
}

_COMPOUND_STARTS = frozenset({"if", "for", "while", "until", "function"})
_STRAY_KEYWORDS = frozenset({"then", "elif", "else", "fi", "do", "done", "}"})
_IF_KEYWORDS = frozenset({"then", "elif", "else", "fi"})
_SEPARATORS = frozenset({OperatorKind.SEMI, OperatorKind.NEWLINE})
_TAIL_OPERATORS = _SEPARATORS | {OperatorKind.AND, OperatorKind.OR, OperatorKind.PIPE}
_CHAIN_OPERATORS = _TAIL_OPERATORS - {OperatorKind.NEWLINE}


# -- AST ---------------------------------------------------------------------


class RedirectionKind(StrEnum):
    """Which stream a redirection affects."""

    STDOUT = "stdout"
    STDERR = "stderr"
    STDIN = "stdin"
    STDERR_TO_STDOUT = "stderr-to-stdout"
    STDOUT_TO_STDERR = "stdout-to-stderr"


@dataclass(frozen=True)
class Redirection:
    """One redirection; ``target`` is ``None`` for the ``2>&1``/``>&2`` forms."""

    kind: RedirectionKind
    target: Word | None = None
    append: bool = False


@dataclass(frozen=True)
class SimpleCommand:
    """A command name, its arguments, and its redirections."""

    words: tuple[Word, ...]
    redirections: tuple[Redirection, ...] = ()

    @property
    def command(self) -> Word | None:
        """Return the command word, or ``None`` for a redirection-only stage."""
        return self.words[0] if self.words else None

    @property
    def args(self) -> tuple[Word, ...]:
        """Return the argument words."""
        return self.words[1:]

    @property
    def arg_quoted(self) -> tuple[bool, ...]:
        """Return, for each argument, whether any part of it was quoted."""
        return tuple(word.quoted for word in self.args)


@dataclass(frozen=True)
class PipelineStage:
    """A command plus the operator that joined it to the previous stage.

    ``chain_operator`` is ``""`` for the first stage and for stages
    joined by ``|``; otherwise ``"&&"``, ``"||"`` or ``";"``.
    """

    command: SimpleCommand
    chain_operator: str = ""
    negation_count: int = 0


@dataclass(frozen=True)
class Pipeline:
    """Stages on one line of input, in source order."""

    stages: tuple[PipelineStage, ...]


@dataclass(frozen=True)
class Tail:
    """Unparsed text following a statement and the operator joining it."""

    operator: str
    text: str


@dataclass(frozen=True)
class PipelineStatement:
    """Ordinary commands; one ``Pipeline`` per newline-separated line."""

    pipelines: tuple[Pipeline, ...]
    tail: Tail | None = None


@dataclass(frozen=True)
class IfBranch:
    """A condition/body pair; ``condition`` is ``None`` for ``else``."""

    condition: str | None
    body: str


@dataclass(frozen=True)
class IfStatement:
    """``if``/``elif``/``else``/``fi``."""

    branches: tuple[IfBranch, ...]
    redirections: tuple[Redirection, ...] = ()
    tail: Tail | None = None


@dataclass(frozen=True)
class ForStatement:
    """``for NAME in WORDS; do BODY; done``."""

    variable: str
    list_text: str
    body: str
    redirections: tuple[Redirection, ...] = ()
    tail: Tail | None = None


@dataclass(frozen=True)
class WhileStatement:
    """``while COND; do BODY; done``."""

    condition: str
    body: str
    redirections: tuple[Redirection, ...] = ()
    tail: Tail | None = None


@dataclass(frozen=True)
class UntilStatement:
    """``until COND; do BODY; done``."""

    condition: str
    body: str
    redirections: tuple[Redirection, ...] = ()
    tail: Tail | None = None


@dataclass(frozen=True)
class FunctionDef:
    """A function definition; ``body`` is the text between the braces."""

    name: str
    body: str
    tail: Tail | None = None


CompoundStatement: TypeAlias = IfStatement | ForStatement | WhileStatement | UntilStatement
ParsedStatement: TypeAlias = PipelineStatement | CompoundStatement | FunctionDef


# -- errors --------------------------------------------------------------------


def _describe(token: Token | None) -> str:
    if token is None or (isinstance(token, Operator) and token.kind is OperatorKind.NEWLINE):
        return "newline"
    return token.text


def _unexpected(token: Token | str | None) -> ShellSyntaxError:
    text = token if isinstance(token, str) else _describe(token)
    return ShellSyntaxError(f"syntax error near unexpected token `{text}'")


def _unexpected_eof() -> ShellSyntaxError:
    return ShellSyntaxError("syntax error: unexpected end of file")


# -- parser ----------------------------------------------------------------------


def parse(line: str) -> ParsedStatement | None:
    """Parse one line of input.

    Args:
        line: Raw shell input.

    Returns:
        The statement, or ``None`` if the line holds nothing to run
        (blank or comment only).

    Raises:
        ShellSyntaxError: If the line is not valid shell syntax.

    """
    return _Parser(line, tokenize(line)).parse_statement()


class _Parser:
    """Recursive-descent parser over a token list."""

    def __init__(self, source: str, tokens: list[Token]) -> None:
        self._src = source
        self._tokens = tokens
        self._pos = 0

    def _peek(self, offset: int = 0) -> Token | None:
        index = self._pos + offset
        return self._tokens[index] if index < len(self._tokens) else None

    def _is_operator(self, offset: int, kind: OperatorKind) -> bool:
        token = self._peek(offset)
        return isinstance(token, Operator) and token.kind is kind

    def _text(self, start: int, stop: int) -> str:
        """Return the source text of tokens ``start..stop-1``, separators trimmed."""
        while start < stop and self._is_separator(start):
            start += 1
        while stop > start and self._is_separator(stop - 1):
            stop -= 1
        if start >= stop:
            return ""
        return self._src[self._tokens[start].start : self._tokens[stop - 1].end].strip()

    def _is_separator(self, index: int) -> bool:
        token = self._tokens[index]
        return isinstance(token, Operator) and token.kind in _SEPARATORS

    # -- statements ------------------------------------------------------

    def parse_statement(self) -> ParsedStatement | None:
        while self._is_operator(0, OperatorKind.NEWLINE):
            self._pos += 1
        token = self._peek()
        if token is None:
            return None
        if isinstance(token, Word) and self._starts_function(0):
            return self._parse_function()
        if not (isinstance(token, Word) and token.is_bare(*_COMPOUND_STARTS)):
            return self._parse_pipelines()

        keyword = token.text
        statement: CompoundStatement
        if keyword == "if":
            statement = self._parse_if()
        elif keyword == "for":
            statement = self._parse_for()
        elif keyword == "while":
            condition, body = self._parse_loop()
            statement = WhileStatement(condition, body)
        else:
            condition, body = self._parse_loop()
            statement = UntilStatement(condition, body)
        redirections = self._parse_trailing_redirections()
        return replace(statement, redirections=redirections, tail=self._parse_tail())

    def _starts_function(self, offset: int) -> bool:
        token = self._peek(offset)
        if not isinstance(token, Word) or token.quoted:
            return False
        if token.text == "function":
            return True
        return (
            NAME_PATTERN.match(token.text) is not None
            and self._is_operator(offset + 1, OperatorKind.LPAREN)
            and self._is_operator(offset + 2, OperatorKind.RPAREN)
        )

    def _parse_if(self) -> IfStatement:
        branches: list[IfBranch] = []
        index = self._pos + 1
        while True:
            then_index = self._expect(self._find(index, _IF_KEYWORDS), "then")
            condition = self._text(index, then_index)
            if not condition:
                raise _unexpected("then")
            end_index = self._find(then_index + 1, _IF_KEYWORDS)
            if end_index is None:
                raise _unexpected_eof()
            keyword = self._tokens[end_index].text
            if keyword == "then":
                raise _unexpected("then")
            body = self._text(then_index + 1, end_index)
            if not body:
                raise _unexpected(keyword)
            branches.append(IfBranch(condition, body))
            if keyword == "elif":
                index = end_index + 1
                continue
            if keyword == "else":
                fi_index = self._expect(self._find(end_index + 1, _IF_KEYWORDS), "fi")
                body = self._text(end_index + 1, fi_index)
                if not body:
                    raise _unexpected("fi")
                branches.append(IfBranch(None, body))
                end_index = fi_index
            self._pos = end_index + 1
            return IfStatement(tuple(branches))

    def _parse_for(self) -> ForStatement:
        name = self._peek(1)
        if not isinstance(name, Word):
            raise _unexpected(name)
        if NAME_PATTERN.match(name.text) is None:
            msg = f"`{name.text}': not a valid identifier"
            raise ShellSyntaxError(msg)
        keyword_in = self._peek(2)
        if not (isinstance(keyword_in, Word) and keyword_in.is_bare("in")):
            raise _unexpected(keyword_in)
        list_start = self._pos + 3
        do_index = self._find(list_start, frozenset({"do"}), anywhere=True)
        if do_index is None:
            raise _unexpected_eof()
        list_text = self._text(list_start, do_index)
        body = self._parse_do_body(do_index)
        return ForStatement(name.text, list_text, body)

    def _parse_loop(self) -> tuple[str, str]:
        start = self._pos + 1
        do_index = self._find(start, frozenset({"do"}), anywhere=True)
        if do_index is None:
            raise _unexpected_eof()
        condition = self._text(start, do_index)
        if not condition:
            raise _unexpected("do")
        return condition, self._parse_do_body(do_index)

    def _parse_do_body(self, do_index: int) -> str:
        done_index = self._find(do_index + 1, frozenset({"done"}))
        if done_index is None:
            raise _unexpected_eof()
        body = self._text(do_index + 1, done_index)
        if not body:
            raise _unexpected("done")
        self._pos = done_index + 1
        return body

    def _parse_function(self) -> FunctionDef:
        first = self._peek()
        assert isinstance(first, Word)  # noqa: S101
        if first.is_bare("function"):
            name = self._peek(1)
            if not isinstance(name, Word):
                raise _unexpected(name)
            if NAME_PATTERN.match(name.text) is None:
                msg = f"`{name.text}': not a valid identifier"
                raise ShellSyntaxError(msg)
            self._pos += 2
            if self._is_operator(0, OperatorKind.LPAREN):
                if not self._is_operator(1, OperatorKind.RPAREN):
                    raise _unexpected(self._peek(1))
                self._pos += 2
        else:
            name = first
            self._pos += 3
        while self._is_operator(0, OperatorKind.NEWLINE):
            self._pos += 1
        brace = self._peek()
        if not (isinstance(brace, Word) and brace.is_bare("{")):
            raise _unexpected(brace)
        close_index = self._find(self._pos + 1, frozenset({"}"}))
        if close_index is None:
            raise _unexpected_eof()
        body = self._text(self._pos + 1, close_index)
        self._pos = close_index + 1
        return FunctionDef(name.text, body, self._parse_tail())

    def _expect(self, index: int | None, keyword: str) -> int:
        if index is None:
            raise _unexpected_eof()
        found = self._tokens[index].text
        if found != keyword:
            raise _unexpected(found)
        return index

    def _find(self, start: int, stops: frozenset[str], *, anywhere: bool = False) -> int | None:
        """Return the index of the first stop keyword at nesting depth zero.

        Args:
            start: Token index to scan from (assumed command position).
            stops: Keywords that end the scan.
            anywhere: Accept a stop keyword outside command position too.

        Returns:
            The token index, or ``None`` if the line ends first.

        """
        stack: list[str] = []
        at_command = True
        after_function = False
        last = len(self._tokens) - 1
        for index in range(start, len(self._tokens)):
            token = self._tokens[index]
            if isinstance(token, Operator):
                at_command = token.kind in _COMMAND_STARTERS
                after_function = False
                continue
            word = None if token.quoted else token.text
            closes = at_command or (word == "}" and index == last)
            if not stack and word in stops and (closes or anywhere):
                return index
            if stack and word == stack[-1] and closes:
                stack.pop()
                at_command = False
                continue
            if at_command and word in _OPENERS:
                stack.append(_OPENERS[word])
            if after_function:
                at_command, after_function = True, False
                continue
            after_function = at_command and word == "function"
            at_command = at_command and word in _COMMAND_PREFIXES
        return None

    def _parse_trailing_redirections(self) -> tuple[Redirection, ...]:
        redirections: list[Redirection] = []
        while (token := self._peek()) is not None and isinstance(token, Operator):
            if token.kind not in REDIRECT_KINDS:
                break
            redirections.append(self._parse_redirection())
        return tuple(redirections)

    def _parse_tail(self) -> Tail | None:
        token = self._peek()
        if token is None:
            return None
        if not isinstance(token, Operator) or token.kind in REDIRECT_KINDS:
            raise _unexpected(token)
        if token.kind not in _TAIL_OPERATORS:
            raise _unexpected(token)
        self._pos += 1
        rest = self._peek()
        if rest is None:
            if token.kind in _SEPARATORS:
                return None
            raise _unexpected_eof()
        return Tail(token.text, self._src[rest.start :].strip())

    # -- pipelines -----------------------------------------------------------

    def _parse_redirection(self) -> Redirection:
        operator = self._peek()
        assert isinstance(operator, Operator)  # noqa: S101
        self._pos += 1
        kind = operator.kind
        if kind is OperatorKind.ERR_TO_OUT:
            return Redirection(RedirectionKind.STDERR_TO_STDOUT)
        if kind is OperatorKind.OUT_TO_ERR:
            return Redirection(RedirectionKind.STDOUT_TO_STDERR)
        target = self._peek()
        if not isinstance(target, Word):
            raise _unexpected(target)
        self._pos += 1
        if kind is OperatorKind.REDIRECT_IN:
            return Redirection(RedirectionKind.STDIN, target)
        if kind in (OperatorKind.REDIRECT_ERR, OperatorKind.REDIRECT_ERR_APPEND):
            append = kind is OperatorKind.REDIRECT_ERR_APPEND
            return Redirection(RedirectionKind.STDERR, target, append=append)
        append = kind is OperatorKind.REDIRECT_APPEND
        return Redirection(RedirectionKind.STDOUT, target, append=append)

    def _parse_pipelines(self) -> PipelineStatement:
        pipelines: list[Pipeline] = []
        stages: list[PipelineStage] = []
        words: list[Word] = []
        redirections: list[Redirection] = []
        chain = ""
        negations = 0
        pending: str | None = None

        def stage_is_empty() -> bool:
            return not words and not redirections

        def finish_stage() -> None:
            nonlocal negations
            stages.append(
                PipelineStage(SimpleCommand(tuple(words), tuple(redirections)), chain, negations)
            )
            words.clear()
            redirections.clear()
            negations = 0

        while (token := self._peek()) is not None:
            if isinstance(token, Word):
                if stage_is_empty() and not token.quoted:
                    if token.text == "!":
                        negations += 1
                        self._pos += 1
                        continue
                    if token.text in _STRAY_KEYWORDS:
                        raise _unexpected(token)
                    is_compound = token.text in _COMPOUND_STARTS or self._starts_function(0)
                    if is_compound and pending is not None and negations == 0:
                        if stages:
                            pipelines.append(Pipeline(tuple(stages)))
                        tail = Tail(pending, self._src[token.start :].strip())
                        return PipelineStatement(tuple(pipelines), tail)
                words.append(token)
                self._pos += 1
            elif token.kind in REDIRECT_KINDS:
                redirections.append(self._parse_redirection())
            elif token.kind is OperatorKind.NEWLINE:
                self._pos += 1
                if stage_is_empty():
                    if negations or pending in ("&&", "||", "|"):
                        continue
                    if not stages:
                        continue
                else:
                    finish_stage()
                pipelines.append(Pipeline(tuple(stages)))
                stages = []
                chain = ""
                pending = "\n"
            elif token.kind in _CHAIN_OPERATORS:
                if stage_is_empty():
                    raise _unexpected(token)
                finish_stage()
                chain = "" if token.kind is OperatorKind.PIPE else token.text
                pending = token.text
                self._pos += 1
            else:
                raise _unexpected(token)

        if stage_is_empty():
            if negations or pending in ("&&", "||", "|"):
                raise _unexpected_eof()
        else:
            finish_stage()
        if stages:
            pipelines.append(Pipeline(tuple(stages)))
        return PipelineStatement(tuple(pipelines))
