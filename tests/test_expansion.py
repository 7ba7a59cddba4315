"""Tests for variable, tilde, and glob expansion.

Expansion runs on lexer words at execution time.  These tests drive the
expanders directly with plain dict environments and an in-memory
filesystem, without going through the shell.
"""

import pytest

from py_vsh.expansion import (
    compile_glob,
    expand_argument,
    expand_list_item,
    expand_tilde,
    expand_variables,
    expand_word,
    glob,
    has_glob,
    lookup,
)
from py_vsh.fs import VirtualFs
from py_vsh.lexer import Word, tokenize


def _word(source: str) -> Word:
    """Tokenize *source* and return its single word."""
    tokens = tokenize(source)
    assert len(tokens) == 1
    token = tokens[0]
    assert isinstance(token, Word)
    return token


def _fs() -> VirtualFs:
    """Create a small tree for glob tests."""
    return VirtualFs(
        {
            "/d/a.txt": "",
            "/d/b.txt": "",
            "/d/c.md": "",
            "/d/.hidden.txt": "",
            "/d/sub/x.txt": "",
        }
    )


class TestLookup:
    """Verify parameter lookup and the fixed defaults."""

    def test_set_variable(self) -> None:
        """A set variable returns its value."""
        assert lookup("A", {"A": "1"}) == "1"

    def test_unset_variable(self) -> None:
        """An unset variable returns None."""
        assert lookup("A", {}) is None

    def test_exit_status(self) -> None:
        """``?`` comes from the last exit code, never the environment."""
        assert lookup("?", {"?": "9"}, last_exit_code=3) == "3"

    @pytest.mark.parametrize(("name", "value"), [("$", "1"), ("0", "bash"), ("#", "0")])
    def test_defaults(self, name: str, value: str) -> None:
        """``$$``, ``$0`` and ``$#`` have fallbacks."""
        assert lookup(name, {}) == value


class TestVariables:
    """Verify ``$`` expansion in text."""

    def test_plain_and_braced(self) -> None:
        """``$NAME`` and ``${NAME}`` both expand."""
        env = {"HOME": "/h", "X": "x"}
        assert expand_variables("$HOME/${X}y", env) == "/h/xy"

    def test_name_stops_at_non_identifier(self) -> None:
        """A name ends at the first character that cannot continue it."""
        assert expand_variables("$A-$A.", {"A": "v"}) == "v-v."

    def test_unset_is_empty(self) -> None:
        """Unset names expand to nothing."""
        assert expand_variables("[$NOPE]", {}) == "[]"

    def test_default_used_when_unset(self) -> None:
        """``${X:-d}`` falls back when X is unset."""
        assert expand_variables("${X:-fallback}", {}) == "fallback"

    def test_default_not_used_when_empty(self) -> None:
        """A variable set to the empty string keeps its empty value."""
        assert expand_variables("${X:-fallback}", {"X": ""}) == ""

    def test_default_not_used_when_set(self) -> None:
        """A set variable wins over the default."""
        assert expand_variables("${X:-fallback}", {"X": "v"}) == "v"

    def test_length(self) -> None:
        """``${#X}`` is the length of the value."""
        assert expand_variables("${#X}", {"X": "hello"}) == "5"

    def test_positional_and_specials(self) -> None:
        """Digits and special characters are one-character names."""
        env = {"1": "one", "@": "a b", "*": "a b"}
        assert expand_variables("$1 $@ $* $# $?", env, last_exit_code=2) == "one a b a b 0 2"

    def test_positional_takes_one_digit(self) -> None:
        """``$12`` is ``$1`` followed by ``2``."""
        assert expand_variables("$12", {"1": "x"}) == "x2"

    def test_lone_dollar_is_literal(self) -> None:
        """A ``$`` with nothing usable after it stays."""
        assert expand_variables("cost: $ 5 $", {}) == "cost: $ 5 $"

    def test_unclosed_brace_is_literal(self) -> None:
        """An unclosed ``${`` is kept as typed."""
        assert expand_variables("${X", {"X": "v"}) == "${X"


class TestTilde:
    """Verify ``~`` expansion."""

    def test_alone(self) -> None:
        """A lone tilde is the home directory."""
        assert expand_tilde("~", "/home/u") == "/home/u"

    def test_prefix(self) -> None:
        """``~/x`` is under the home directory."""
        assert expand_tilde("~/x", "/home/u") == "/home/u/x"

    def test_other_users_untouched(self) -> None:
        """``~bob`` is not expanded."""
        assert expand_tilde("~bob", "/home/u") == "~bob"


class TestWords:
    """Verify quoting-aware expansion of lexer words."""

    def test_single_quotes_suppress(self) -> None:
        """Single-quoted text is never expanded."""
        assert expand_word(_word("'$HOME'"), {"HOME": "/h"}) == "$HOME"

    def test_double_quotes_expand(self) -> None:
        """Double-quoted text is expanded."""
        assert expand_word(_word('"$HOME"'), {"HOME": "/h"}) == "/h"

    def test_mixed_segments(self) -> None:
        """Each segment follows its own quoting."""
        word = _word("$A'$A'\"$A\"")
        assert expand_word(word, {"A": "1"}) == "1$A1"

    def test_escaped_dollar(self) -> None:
        """A backslash-escaped dollar is literal."""
        assert expand_word(_word("\\$A"), {"A": "1"}) == "$A"

    def test_tilde_only_unquoted(self) -> None:
        """A quoted tilde stays a tilde."""
        env = {"HOME": "/h"}
        assert expand_word(_word("~/x"), env) == "/h/x"
        assert expand_word(_word("'~'/x"), env) == "~/x"


class TestGlob:
    """Verify pattern matching against the filesystem's path set."""

    def test_has_glob(self) -> None:
        """Only ``*``, ``?`` and ``[`` are metacharacters."""
        assert has_glob("*.txt")
        assert has_glob("a?")
        assert has_glob("[ab]")
        assert not has_glob("plain.txt")

    def test_star_relative(self) -> None:
        """Relative patterns give sorted relative matches."""
        assert glob("*.txt", _fs(), "/d") == ["a.txt", "b.txt"]

    def test_star_absolute(self) -> None:
        """Absolute patterns give absolute matches."""
        assert glob("/d/*.md", _fs(), "/") == ["/d/c.md"]

    def test_question_mark(self) -> None:
        """``?`` matches exactly one character."""
        assert glob("?.txt", _fs(), "/d") == ["a.txt", "b.txt"]

    def test_character_class(self) -> None:
        """Bracket classes and their negation work."""
        assert glob("[a].txt", _fs(), "/d") == ["a.txt"]
        assert glob("[!a].txt", _fs(), "/d") == ["b.txt"]

    def test_wildcards_do_not_cross_slash(self) -> None:
        """``*`` stays inside one path component."""
        assert "sub/x.txt" not in glob("*.txt", _fs(), "/d")
        assert glob("*/x.txt", _fs(), "/d") == ["sub/x.txt"]

    def test_hidden_files_excluded(self) -> None:
        """A leading wildcard never matches a leading dot."""
        assert ".hidden.txt" not in glob("*", _fs(), "/d")
        assert glob(".h*", _fs(), "/d") == [".hidden.txt"]

    def test_dot_slash_prefix_kept(self) -> None:
        """``./*.md`` keeps the ``./`` prefix."""
        assert glob("./*.md", _fs(), "/d") == ["./c.md"]

    def test_no_match_is_literal(self) -> None:
        """An unmatched pattern is returned as typed."""
        assert glob("*.zip", _fs(), "/d") == ["*.zip"]

    def test_inverted_range_is_literal(self) -> None:
        """A class like ``[z-a]`` matches nothing and stays as typed."""
        assert glob("[z-a]", _fs(), "/d") == ["[z-a]"]
        assert glob("/d/[b-a]*", _fs(), "/") == ["/d/[b-a]*"]

    def test_compile_glob_is_anchored(self) -> None:
        """The compiled pattern matches whole paths only."""
        regex = compile_glob("/d/*.txt")
        assert regex.match("/d/a.txt")
        assert not regex.match("/d/a.txt.bak")


class TestArguments:
    """Verify how arguments and for-list items are produced."""

    def test_argument_is_not_split(self) -> None:
        """A variable holding spaces stays one argument."""
        assert expand_argument(_word("$X"), {"X": "a b"}, _fs(), "/d") == ["a b"]

    def test_argument_globbed_when_unquoted(self) -> None:
        """Unquoted arguments are globbed."""
        assert expand_argument(_word("*.md"), {}, _fs(), "/d") == ["c.md"]

    def test_quoted_argument_not_globbed(self) -> None:
        """Quoted arguments are never globbed."""
        assert expand_argument(_word("'*.md'"), {}, _fs(), "/d") == ["*.md"]

    def test_list_item_split_and_globbed(self) -> None:
        """Unquoted for-list items are split on whitespace, then globbed."""
        env = {"X": "one *.md"}
        assert expand_list_item(_word("$X"), env, _fs(), "/d") == ["one", "c.md"]

    def test_quoted_list_item_kept_whole(self) -> None:
        """A quoted for-list item is one item."""
        assert expand_list_item(_word('"$X"'), {"X": "a b"}, _fs(), "/d") == ["a b"]
