"""Interpreter state owned by one ``Shell`` instance.

Everything that survives from one ``exec`` call to the next lives in a
single ``ShellState`` value: the working directory, variables, defined
functions, and the stack of ``local`` scope frames.  Nothing is kept in
module globals, so two shells never see each other's state.

Scope frames record what a ``local`` variable shadowed::

    X=outer
    f() { local X=inner; }     # frame: {"X": "outer"}
    f                          # on return X is "outer" again

A ``None`` in a frame means the name did not exist before the call and
is deleted again when the frame is popped.
"""

from dataclasses import dataclass, field
from typing import TypeAlias

from py_vsh.env import Environment

ScopeFrame: TypeAlias = dict[str, str | None]


@dataclass
class ShellState:
    """Mutable interpreter state.

    Attributes:
        cwd: Absolute current working directory.
        env: Live variables (also holds positional parameters).
        functions: Function name → body source text.
        local_scopes: One frame per active function call.
        previous_dir: Directory ``cd -`` returns to.
        call_depth: Number of active function calls.
        command_count: Commands run in the current top-level ``exec``.
        last_exit_code: Exit code of the last completed run (``$?``).

    """

    cwd: str
    env: Environment = field(default_factory=Environment)
    functions: dict[str, str] = field(default_factory=dict)  # pyright: ignore[reportUnknownVariableType]
    local_scopes: list[ScopeFrame] = field(default_factory=list)  # pyright: ignore[reportUnknownVariableType]
    previous_dir: str = ""
    call_depth: int = 0
    command_count: int = 0
    last_exit_code: int = 0

    @property
    def in_function(self) -> bool:
        """Return True while a function body is executing."""
        return bool(self.local_scopes)

    def push_scope(self) -> None:
        """Open a fresh local-variable frame for a function call."""
        self.local_scopes.append({})

    def pop_scope(self) -> None:
        """Close the innermost frame, restoring every shadowed variable."""
        frame = self.local_scopes.pop()
        for name, prior in frame.items():
            self.env.restore(name, prior)

    def record_local(self, name: str) -> None:
        """Remember *name*'s current value in the innermost frame (once)."""
        frame = self.local_scopes[-1]
        if name not in frame:
            frame[name] = self.env.get(name)
