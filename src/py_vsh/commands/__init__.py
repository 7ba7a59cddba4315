"""The default command library.

Commands are plain async functions ``(args, ctx) -> ExecResult`` kept in
per-topic dicts and wrapped as ``FunctionCommand`` objects on request,
so a shell can be built with all, some, or none of them.
"""

from py_vsh.commands.files import FILE_COMMANDS
from py_vsh.commands.misc import MISC_COMMANDS
from py_vsh.commands.text import TEXT_COMMANDS
from py_vsh.types import Command, FunctionCommand


def default_commands() -> list[Command]:
    """Return a fresh ``Command`` for every built-in handler."""
    handlers = {**TEXT_COMMANDS, **FILE_COMMANDS, **MISC_COMMANDS}
    return [FunctionCommand(name, handler) for name, handler in handlers.items()]


__all__ = ["default_commands"]
