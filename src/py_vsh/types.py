"""Core value types shared by the engine and the command plug-ins.

Every command — builtin, user function, or registered plug-in — produces
an ``ExecResult``.  Plug-ins receive a ``CommandContext`` describing the
world they run in: the filesystem, the working directory, the live
environment, their stdin, and a re-entrant callback into ``exec``.

Design choices:
    - **Frozen result values.**  A result is never mutated after it is
      built; combining results creates a new one.
    - **Exit codes are normalised.**  Whatever integer a command reports
      is folded into ``0..255`` (modulo 256), just like a real shell.
    - **Commands are a Protocol.**  Anything with a ``name`` and an async
      ``execute(args, ctx)`` can be registered — no base class needed.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, TypeAlias

if TYPE_CHECKING:
    from py_vsh.env import Environment
    from py_vsh.fs.interface import FileSystem

_EXIT_CODE_MODULUS = 256


@dataclass(frozen=True)
class ExecResult:
    """The outcome of executing a command, pipeline, or whole line."""

    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0

    def __post_init__(self) -> None:
        """Fold the exit code into the 0..255 range."""
        object.__setattr__(self, "exit_code", self.exit_code % _EXIT_CODE_MODULUS)

    @classmethod
    def failure(cls, stderr: str, exit_code: int = 1) -> ExecResult:
        """Build a result with no stdout and the given error text."""
        return cls(stdout="", stderr=stderr, exit_code=exit_code)


ExecCallback: TypeAlias = Callable[[str], Awaitable[ExecResult]]


@dataclass
class CommandContext:
    """Everything a command plug-in may use while it runs.

    Attributes:
        fs: The filesystem collaborator.
        cwd: Absolute working directory at the time of the call.
        env: The shell's live variable mapping (writes are visible).
        stdin: Input text for this invocation.
        exec: Re-entrant callback into ``Shell.exec``.

    """

    fs: FileSystem
    cwd: str
    env: Environment
    stdin: str
    exec: ExecCallback

    def resolve(self, path: str) -> str:
        """Resolve *path* against the working directory."""
        return self.fs.resolve_path(self.cwd, path)


class Command(Protocol):
    """Contract satisfied by every registered command."""

    @property
    def name(self) -> str:
        """The unique name the command is dispatched under."""
        ...

    async def execute(self, args: list[str], ctx: CommandContext) -> ExecResult:
        """Run the command with already-expanded arguments."""
        ...


CommandHandler: TypeAlias = Callable[[list[str], CommandContext], Awaitable[ExecResult]]


@dataclass(frozen=True)
class FunctionCommand:
    """Adapt a plain async function into a ``Command``."""

    name: str
    handler: CommandHandler

    async def execute(self, args: list[str], ctx: CommandContext) -> ExecResult:
        """Delegate to the wrapped handler."""
        return await self.handler(args, ctx)
