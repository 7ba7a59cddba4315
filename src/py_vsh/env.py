"""Shell variables — the live ``NAME=value`` mapping.

Every variable the shell knows about lives here: exported values,
plain assignments, loop variables, ``local`` variables while their
function runs, and the positional parameters (``1``, ``2``, ``@``,
``#``) of the active function call.

Key design properties:
    - **Strings only** — both names and values are strings.
    - **Unique names** — assigning an existing name overwrites it.
    - **Live** — commands receive this very object in their context, so
      a command that writes a variable is seen by the next one.

``Environment`` is a ``MutableMapping``, so it reads like a dict, and
adds the few helpers the engine needs on top: ``discard``, ``restore``
and ``copy``.
"""

from collections.abc import Iterator, MutableMapping


class Environment(MutableMapping[str, str]):
    """A mutable, string-keyed store for shell variables."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        """Create an environment, optionally pre-populated.

        Args:
            initial: Starting variables (copied, not referenced).

        """
        self._vars: dict[str, str] = dict(initial) if initial else {}

    def __getitem__(self, key: str) -> str:
        """Return the value for *key* or raise ``KeyError``."""
        return self._vars[key]

    def __setitem__(self, key: str, value: str) -> None:
        """Set *key* to *value* (creates or overwrites)."""
        self._vars[key] = value

    def __delitem__(self, key: str) -> None:
        """Remove *key* or raise ``KeyError``."""
        del self._vars[key]

    def __iter__(self) -> Iterator[str]:
        """Iterate over variable names in insertion order."""
        return iter(self._vars)

    def __len__(self) -> int:
        """Return the number of variables."""
        return len(self._vars)

    def discard(self, key: str) -> None:
        """Remove *key* if present; do nothing otherwise."""
        self._vars.pop(key, None)

    def restore(self, key: str, value: str | None) -> None:
        """Put *key* back to *value*, deleting it when *value* is ``None``."""
        if value is None:
            self.discard(key)
        else:
            self._vars[key] = value

    def copy(self) -> dict[str, str]:
        """Return an independent snapshot as a plain dict."""
        return dict(self._vars)
