"""Tab completion for the interactive shell.

What a word completes to depends on where it sits on the line:

- in command position (first word, or after ``|``, ``&&``, ``;``,
  ``then``, ``do`` ...) it completes builtins, functions and commands;
- a word starting with ``$`` completes variable references;
- after ``unset``, ``export``, ``printenv`` or ``local`` it completes
  variable names;
- anywhere else it completes paths in the virtual filesystem.

``completions(text, line)`` holds that logic and needs no terminal.
``complete(text, state)`` is the thin readline adapter the REPL installs.
"""

from __future__ import annotations

import asyncio
import readline
from typing import TYPE_CHECKING

from py_vsh.builtins import BUILTINS

if TYPE_CHECKING:
    from py_vsh.shell import Shell

# Words after which a new command starts.
_COMMAND_SEPARATORS: frozenset[str] = frozenset(
    [";", "|", "||", "&&", "then", "do", "else", "elif", "{", "!"]
)

# Commands whose arguments are variable names.
_VARIABLE_COMMANDS: frozenset[str] = frozenset(["unset", "export", "printenv", "local"])


class Completer:
    """Offers candidates drawn from one live shell session."""

    def __init__(self, shell: Shell) -> None:
        """Bind the completer to *shell*; its state is read on every call."""
        self._shell = shell

    def complete(self, text: str, state: int) -> str | None:
        """Answer readline's ``state``-th request for *text*.

        readline calls this with ``state`` 0, 1, 2, ... until it gets
        ``None`` back.
        """
        candidates = self.completions(text, readline.get_line_buffer())
        return candidates[state] if state < len(candidates) else None

    def completions(self, text: str, line: str) -> list[str]:
        """List what *text* could complete to, given the *line* so far.

        Args:
            text: The word under the cursor (possibly empty).
            line: Everything typed on the line up to the cursor.

        Returns:
            Matching candidates in sorted order.

        """
        words = line.lstrip().split()
        if not line.endswith(" ") and words:
            words = words[:-1]

        if text.startswith("$"):
            return self._complete_dollar_vars(text)

        # Nothing before the cursor word, or a separator → command position
        if not words or words[-1] in _COMMAND_SEPARATORS or words[-1].endswith((";", "|", "&")):
            return self._complete_commands(text)

        if words[0] in _VARIABLE_COMMANDS:
            return self._complete_variables(text)

        return self._complete_paths(text)

    # -- private completers ------------------------------------------------

    def _complete_commands(self, text: str) -> list[str]:
        """Complete builtins, functions, and registered commands."""
        names = {*BUILTINS, *self._shell.function_names, *self._shell.command_names}
        return sorted(name for name in names if name.startswith(text))

    def _complete_variables(self, text: str) -> list[str]:
        """Complete variable names (without ``$`` prefix)."""
        return sorted(name for name in self._shell.env if name.startswith(text))

    def _complete_dollar_vars(self, text: str) -> list[str]:
        """Complete ``$VAR`` references with the dollar prefix."""
        prefix = text[1:]
        return [f"${name}" for name in self._complete_variables(prefix)]

    def _complete_paths(self, text: str) -> list[str]:
        """Complete filesystem paths.

        Absolute partial paths complete to absolute paths; anything else
        completes relative to the working directory.  Only entries one
        level below the partial path's directory are offered, and
        directories get a trailing ``/``.
        """
        last_slash = text.rfind("/")
        directory = text[: last_slash + 1]
        prefix = text[last_slash + 1 :]
        base = self._shell.fs.resolve_path(self._shell.cwd, directory or ".")
        parent_of = base.rstrip("/") + "/"

        candidates: list[str] = []
        for path in self._shell.fs.get_all_paths():
            if path == "/" or not path.startswith(parent_of):
                continue
            name = path[len(parent_of) :]
            if "/" in name or not name.startswith(prefix):
                continue
            if name.startswith(".") and not prefix.startswith("."):
                continue
            suffix = "/" if self._is_directory(path) else ""
            candidates.append(f"{directory}{name}{suffix}")
        return sorted(candidates)

    def _is_directory(self, path: str) -> bool:
        """Return True if *path* is a directory in the filesystem."""
        try:
            info = asyncio.run(self._shell.fs.stat(path))
        except OSError:
            return False
        return info.is_directory
