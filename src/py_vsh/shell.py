"""The shell — execution engine for one simulated bash session.

``Shell.exec(line)`` takes a raw line of shell syntax and returns an
``ExecResult`` (stdout, stderr, exit code).  Nothing ever touches the
real operating system: files live in a ``FileSystem`` collaborator and
commands are Python objects registered by name.

How a line runs::

    exec("for f in *.txt; do cat $f; done > all")
      │
      ├─ parse() ──────────► ForStatement(variable, list_text, body, ...)
      │
      ├─ dispatch by statement type
      │     └─ for each item: _run(body)   ← nested, parsed again
      │            └─ _run_command: expand → builtin / function / command
      │
      └─ redirections, then the Tail (``; rest``, ``&& rest``, ``| rest``)

Design choices:
    - **Returns results, not prints.**  The caller decides how to
      display output, which keeps the engine fully testable.
    - **Dispatch via dicts.**  Statement types map to runner methods,
      builtin names map to handlers, command names map to plug-ins.
    - **Failures are values.**  Expected failures come back as an
      ``ExecResult`` with a non-zero code.  Unexpected exceptions from a
      command are caught once, at the dispatch boundary.
    - **Bounded.**  Every function call, command, and loop iteration is
      counted against the ``ExecutionLimits``, so a hostile script ends
      with an error instead of hanging the host.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, TypeAlias

from py_vsh.builtins import BUILTINS, split_assignment
from py_vsh.commands import default_commands
from py_vsh.env import Environment
from py_vsh.errors import ExecutionLimitError, ShellSyntaxError
from py_vsh.expansion import expand_argument, expand_list_item, expand_word
from py_vsh.fs.virtual import VirtualFs, normalize_path
from py_vsh.lexer import Quoting, Word, tokenize
from py_vsh.limits import ExecutionLimits, LoopCounter
from py_vsh.logging import Logger, LogLevel
from py_vsh.parser import (
    CompoundStatement,
    ForStatement,
    FunctionDef,
    IfStatement,
    Pipeline,
    PipelineStage,
    PipelineStatement,
    Redirection,
    RedirectionKind,
    SimpleCommand,
    Tail,
    UntilStatement,
    WhileStatement,
    parse,
)
from py_vsh.state import ShellState
from py_vsh.types import CommandContext, ExecResult

if TYPE_CHECKING:
    from py_vsh.fs.interface import FileSystem
    from py_vsh.types import Command

DEFAULT_HOME = "/home/user"
DEFAULT_PATH = "/bin:/usr/bin"
_DEFAULT_DIRECTORIES = ("/home/user", "/bin", "/usr/bin", "/tmp")
_DEV_NULL = "/dev/null"
_COMMAND_NOT_FOUND = 127
_SYNTAX_ERROR = 2

_CompoundRunner: TypeAlias = Callable[[Any, str], Awaitable[ExecResult]]


@dataclass(frozen=True)
class _Gate:
    """The operator joining a statement to what ran before it."""

    operator: str = ""
    previous: int = 0

    def allows(self) -> bool:
        """Return True if the statement should run."""
        return _should_run(self.operator, self.previous)


def _should_run(operator: str, previous: int) -> bool:
    if operator == "&&":
        return previous == 0
    if operator == "||":
        return previous != 0
    return True


@dataclass
class _Output:
    """Accumulates the streams of several nested runs."""

    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0

    def add(self, result: ExecResult, *, status: bool = True) -> None:
        self.stdout += result.stdout
        self.stderr += result.stderr
        if status:
            self.exit_code = result.exit_code

    def fail(self, message: str) -> None:
        self.stderr += message
        self.exit_code = 1

    def result(self) -> ExecResult:
        return ExecResult(self.stdout, self.stderr, self.exit_code)


class _SinkKind(StrEnum):
    """Destinations an output stream can be routed to."""

    STDOUT = "stdout"
    STDERR = "stderr"
    FILE = "file"
    NULL = "null"


@dataclass(frozen=True)
class _Sink:
    """Where one output stream ends up after redirection."""

    kind: _SinkKind
    path: str = ""
    label: str = ""


_TO_STDOUT = _Sink(_SinkKind.STDOUT)
_TO_STDERR = _Sink(_SinkKind.STDERR)
_TO_NULL = _Sink(_SinkKind.NULL)


def _split_runs(stages: tuple[PipelineStage, ...]) -> list[list[PipelineStage]]:
    """Group stages into pipe-connected runs (``a | b && c`` → [[a, b], [c]])."""
    runs: list[list[PipelineStage]] = []
    for index, stage in enumerate(stages):
        if index == 0 or stage.chain_operator:
            runs.append([stage])
        else:
            runs[-1].append(stage)
    return runs


def _is_assignment(word: Word) -> bool:
    first = word.segments[0]
    return first.quoting is Quoting.UNQUOTED and split_assignment(first.text) is not None


class Shell:
    """A simulated bash interpreter over a pluggable filesystem."""

    def __init__(
        self,
        *,
        fs: FileSystem | None = None,
        files: dict[str, str] | None = None,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        commands: Iterable[Command] | None = None,
        max_call_depth: int | None = None,
        max_command_count: int | None = None,
        max_loop_iterations: int | None = None,
        logger: Logger | None = None,
    ) -> None:
        """Create a shell.

        With no ``cwd`` and no ``files`` (and the in-memory filesystem),
        the shell starts in ``/home/user`` with ``/bin``, ``/usr/bin`` and
        ``/tmp`` present and a ``/bin`` stub for every command.
        Otherwise it starts in ``cwd`` (default ``/``).

        Args:
            fs: Filesystem collaborator (default: a fresh ``VirtualFs``).
            files: Initial files, path → content (``VirtualFs`` only).
            cwd: Initial working directory.
            env: Extra initial variables (override ``HOME``/``PATH``).
            commands: Commands to register (default: the built-in library).
            max_call_depth: Override the function nesting cap.
            max_command_count: Override the per-``exec`` command cap.
            max_loop_iterations: Override the per-loop iteration cap.
            logger: Audit log to record into (default: a new one).

        Raises:
            ValueError: If a limit is negative.

        """
        self.limits = ExecutionLimits.from_options(
            max_call_depth=max_call_depth,
            max_command_count=max_command_count,
            max_loop_iterations=max_loop_iterations,
        )
        self._logger = logger if logger is not None else Logger()
        self._fs: FileSystem = fs if fs is not None else VirtualFs()
        virtual = self._fs if isinstance(self._fs, VirtualFs) else None
        self._default_layout = cwd is None and files is None and virtual is not None

        if virtual is not None:
            for path, content in (files or {}).items():
                virtual.write_file_sync(path, content, parents=True)
        home = DEFAULT_HOME if self._default_layout else "/"
        start = normalize_path(cwd) if cwd is not None else home
        if virtual is not None:
            if self._default_layout:
                for directory in _DEFAULT_DIRECTORIES:
                    virtual.mkdir_sync(directory, recursive=True)
            virtual.mkdir_sync(start, recursive=True)

        initial = {"HOME": home, "PATH": DEFAULT_PATH, **(env or {})}
        self._state = ShellState(cwd=start, env=Environment(initial), previous_dir=start)
        self._nesting = 0

        self._commands: dict[str, Command] = {}
        for command in commands if commands is not None else default_commands():
            self.register_command(command)

        self._compound_runners: dict[type, _CompoundRunner] = {
            IfStatement: self._run_if,
            ForStatement: self._run_for,
            WhileStatement: self._run_while,
            UntilStatement: self._run_until,
        }

    # -- accessors -------------------------------------------------------------

    @property
    def cwd(self) -> str:
        """Return the current working directory."""
        return self._state.cwd

    @property
    def env(self) -> dict[str, str]:
        """Return a snapshot of the shell variables."""
        return self._state.env.copy()

    @property
    def state(self) -> ShellState:
        """Return the live interpreter state."""
        return self._state

    @property
    def fs(self) -> FileSystem:
        """Return the filesystem collaborator."""
        return self._fs

    @property
    def logger(self) -> Logger:
        """Return the session audit log."""
        return self._logger

    @property
    def command_names(self) -> list[str]:
        """Return the registered command names, sorted."""
        return sorted(self._commands)

    @property
    def function_names(self) -> list[str]:
        """Return the defined function names, sorted."""
        return sorted(self._state.functions)

    def register_command(self, command: Command) -> None:
        """Register (or replace) a command under its name."""
        self._commands[command.name] = command
        if (
            self._default_layout
            and isinstance(self._fs, VirtualFs)
            and command.name not in (".", "..")
            and "/" not in command.name
        ):
            stub = f"#!/bin/bash\n# Built-in command: {command.name}\n"
            self._fs.write_file_sync(f"/bin/{command.name}", stub)

    async def read_file(self, path: str) -> str:
        """Read a file, resolving *path* against the working directory."""
        return await self._fs.read_file(self._resolve(path))

    async def write_file(self, path: str, content: str) -> None:
        """Write a file, resolving *path* against the working directory."""
        await self._fs.write_file(self._resolve(path), content)

    def _resolve(self, path: str) -> str:
        return self._fs.resolve_path(self._state.cwd, path)

    # -- entry point ----------------------------------------------------------------

    async def exec(self, line: str) -> ExecResult:
        """Execute a line of shell syntax.

        This is also the callback commands receive for re-entrant
        execution.  The command counter resets only on a top-level
        call (no ``exec`` active and no function running).

        Args:
            line: Shell input; may hold several lines.

        Returns:
            The combined result.  Never raises for bad input.

        """
        state = self._state
        top_level = self._nesting == 0 and state.call_depth == 0
        if top_level:
            state.command_count = 0
            if line.strip():
                self._logger.log(LogLevel.DEBUG, f"exec: {line.strip()}", source="shell")
        self._nesting += 1
        try:
            return await self._run(line)
        except ExecutionLimitError as exc:
            if not top_level:
                raise
            self._logger.log(LogLevel.WARNING, exc.message.strip(), source="guard")
            return ExecResult.failure(exc.message)
        finally:
            self._nesting -= 1

    async def _run(self, text: str, stdin: str = "", gate: _Gate | None = None) -> ExecResult:
        """Parse and run *text*; every call counts as one command."""
        state = self._state
        state.command_count += 1
        if state.command_count > self.limits.max_command_count:
            raise ExecutionLimitError(self.limits.command_count_message())
        if not text.strip():
            return ExecResult()
        try:
            statement = parse(text)
        except ShellSyntaxError as exc:
            self._logger.log(
                LogLevel.WARNING, exc.message, source="shell", depth=state.call_depth
            )
            state.last_exit_code = _SYNTAX_ERROR
            return ExecResult.failure(f"bash: {exc.message}\n", _SYNTAX_ERROR)
        if statement is None:
            return ExecResult()
        gate = gate or _Gate()
        if isinstance(statement, PipelineStatement):
            return await self._run_pipelines(statement, stdin, gate)
        if isinstance(statement, FunctionDef):
            return await self._define_function(statement, stdin, gate)
        return await self._run_compound(statement, stdin, gate)

    async def _finish(self, result: ExecResult, tail: Tail | None, stdin: str) -> ExecResult:
        """Run a statement's tail and combine it with the statement's result."""
        if tail is None:
            return result
        if tail.operator == "|":
            piped = await self._run(tail.text, result.stdout)
            return ExecResult(piped.stdout, result.stderr + piped.stderr, piped.exit_code)
        next_stdin = result.stdout if tail.operator == "\n" else stdin
        rest = await self._run(tail.text, next_stdin, _Gate(tail.operator, result.exit_code))
        return ExecResult(
            result.stdout + rest.stdout, result.stderr + rest.stderr, rest.exit_code
        )

    # -- pipelines --------------------------------------------------------------------

    async def _run_pipelines(
        self, statement: PipelineStatement, stdin: str, gate: _Gate
    ) -> ExecResult:
        out = _Output(exit_code=gate.previous)
        tail = statement.tail
        pipe_tail = tail is not None and tail.operator == "|"
        held = ""
        next_stdin = stdin
        last = len(statement.pipelines) - 1
        for index, pipeline in enumerate(statement.pipelines):
            operator = gate.operator if index == 0 else ""
            result, held = await self._run_pipeline(
                pipeline,
                next_stdin,
                operator,
                out.exit_code,
                hold_last=pipe_tail and index == last,
            )
            out.add(result)
            next_stdin = result.stdout
        if pipe_tail:
            assert tail is not None  # noqa: S101
            piped = await self._run(tail.text, held)
            out.stdout += piped.stdout
            out.stderr += piped.stderr
            out.exit_code = piped.exit_code
            return out.result()
        return await self._finish(out.result(), tail, stdin)

    async def _run_pipeline(
        self,
        pipeline: Pipeline,
        stdin: str,
        operator: str,
        previous: int,
        *,
        hold_last: bool = False,
    ) -> tuple[ExecResult, str]:
        """Run one line's stages, gating each pipe-connected run.

        Returns:
            The pipeline's result and, when *hold_last* is set, the
            final run's stdout (withheld from the result).

        """
        runs = _split_runs(pipeline.stages)
        stdout: list[str] = []
        stderr: list[str] = []
        held = ""
        code = previous
        for index, run in enumerate(runs):
            run_operator = operator if index == 0 else run[0].chain_operator
            if not _should_run(run_operator, code):
                continue
            result = await self._run_stages(run, stdin)
            code = result.exit_code
            if run[0].negation_count % 2:
                code = 1 if code == 0 else 0
            self._state.last_exit_code = code
            stderr.append(result.stderr)
            if hold_last and index == len(runs) - 1:
                held = result.stdout
            else:
                stdout.append(result.stdout)
        return ExecResult("".join(stdout), "".join(stderr), code), held

    async def _run_stages(self, run: list[PipelineStage], stdin: str) -> ExecResult:
        """Run pipe-connected stages; only the last stage's stdout survives."""
        stderr: list[str] = []
        result = ExecResult()
        for position, stage in enumerate(run):
            stage_stdin = result.stdout if position > 0 else stdin
            result = await self._run_command(stage.command, stage_stdin)
            stderr.append(result.stderr)
        return ExecResult(result.stdout, "".join(stderr), result.exit_code)

    # -- simple commands ----------------------------------------------------------------

    def _expand(self, word: Word) -> str:
        state = self._state
        return expand_word(word, state.env, last_exit_code=state.last_exit_code)

    async def _run_command(self, command: SimpleCommand, stdin: str) -> ExecResult:
        stdin, failure = await self._read_input(command.redirections, stdin)
        if failure is not None:
            return failure
        if command.words and all(_is_assignment(word) for word in command.words):
            for word in command.words:
                name, _, value = self._expand(word).partition("=")
                self._state.env[name] = value
            result = ExecResult()
        elif command.command is None:
            result = ExecResult()
        else:
            state = self._state
            name = self._expand(command.command)
            args = [
                arg
                for word in command.args
                for arg in expand_argument(
                    word, state.env, self._fs, state.cwd, last_exit_code=state.last_exit_code
                )
            ]
            result = await self._dispatch(name, args, stdin)
        return await self._apply_redirections(result, command.redirections)

    async def _dispatch(self, name: str, args: list[str], stdin: str) -> ExecResult:
        """Route an expanded command to a builtin, function, or plug-in."""
        if not name and not args:
            return ExecResult()
        try:
            builtin = BUILTINS.get(name)
            if builtin is not None:
                return await builtin(self._state, self._fs, args)
            body = self._state.functions.get(name)
            if body is not None:
                return await self._call_function(name, body, args, stdin)
            command = self._commands.get(name.rsplit("/", 1)[-1])
            if command is None:
                return ExecResult.failure(
                    f"bash: {name}: command not found\n", _COMMAND_NOT_FOUND
                )
            ctx = CommandContext(
                fs=self._fs,
                cwd=self._state.cwd,
                env=self._state.env,
                stdin=stdin,
                exec=self.exec,
            )
            return await command.execute(args, ctx)
        except ExecutionLimitError:
            raise
        except RecursionError as exc:
            # Python's own stack ran out before max_call_depth did.
            raise ExecutionLimitError(self.limits.call_depth_message(name)) from exc
        except Exception as exc:
            self._logger.log(
                LogLevel.ERROR,
                f"{name}: {exc}",
                source="dispatch",
                depth=self._state.call_depth,
            )
            return ExecResult.failure(f"{name}: {exc}\n")

    async def _call_function(
        self, name: str, body: str, args: list[str], stdin: str
    ) -> ExecResult:
        """Run a function body with its own positional parameters and scope.

        When Python's stack runs out mid-call the frame is left as it is:
        the nearest caller with stack to spare unwinds every inner frame.
        """
        state = self._state
        env = state.env
        depth = state.call_depth
        if depth >= self.limits.max_call_depth:
            message = self.limits.call_depth_message(name)
            self._logger.log(LogLevel.WARNING, message.strip(), source="guard", depth=depth)
            return ExecResult.failure(message)

        positional = {str(i) for i in range(1, len(args) + 1)} | {"@", "*", "#"}
        positional |= {key for key in env if key.isdigit() and key != "0"}
        saved = {key: env.get(key) for key in positional}
        scopes = len(state.local_scopes)
        state.call_depth = depth + 1
        state.push_scope()
        exhausted = False
        try:
            for key in saved:
                env.discard(key)
            for index, arg in enumerate(args, start=1):
                env[str(index)] = arg
            env["@"] = env["*"] = " ".join(args)
            env["#"] = str(len(args))
            return await self._run(body, stdin)
        except RecursionError:
            exhausted = True
            raise
        finally:
            if not exhausted:
                self._leave_function(depth, scopes, saved)

    def _leave_function(self, depth: int, scopes: int, saved: dict[str, str | None]) -> None:
        """Restore the caller's depth, scope frames, and positional parameters."""
        state = self._state
        state.call_depth = depth
        while len(state.local_scopes) > scopes:
            state.pop_scope()
        for key in [key for key in state.env if key.isdigit() and key != "0"]:
            state.env.discard(key)
        for key, value in saved.items():
            state.env.restore(key, value)

    # -- redirections -------------------------------------------------------------------

    async def _read_input(
        self, redirections: tuple[Redirection, ...], stdin: str
    ) -> tuple[str, ExecResult | None]:
        """Apply ``<`` redirections before a command runs."""
        for redirection in redirections:
            if redirection.kind is not RedirectionKind.STDIN or redirection.target is None:
                continue
            target = self._expand(redirection.target)
            try:
                stdin = await self._fs.read_file(self._resolve(target))
            except OSError:
                return stdin, ExecResult.failure(f"bash: {target}: No such file or directory\n")
        return stdin, None

    async def _apply_redirections(
        self, result: ExecResult, redirections: tuple[Redirection, ...]
    ) -> ExecResult:
        """Route stdout/stderr after a command ran, left to right.

        ``2>&1`` points stderr at wherever stdout currently goes and
        ``>&2`` does the reverse, so ``> f 2>&1`` sends both to ``f``.
        Every file target is created (or truncated) even if a later
        redirection overrides it.
        """
        if all(r.kind is RedirectionKind.STDIN for r in redirections):
            return result
        out, err = _TO_STDOUT, _TO_STDERR
        for redirection in redirections:
            kind = redirection.kind
            if kind is RedirectionKind.STDERR_TO_STDOUT:
                err = out
                continue
            if kind is RedirectionKind.STDOUT_TO_STDERR:
                out = err
                continue
            if kind is RedirectionKind.STDIN or redirection.target is None:
                continue
            target = self._expand(redirection.target)
            if target == _DEV_NULL:
                sink = _TO_NULL
            else:
                sink = _Sink(_SinkKind.FILE, self._resolve(target), target)
                try:
                    if redirection.append:
                        await self._fs.append_file(sink.path, "")
                    else:
                        await self._fs.write_file(sink.path, "")
                except OSError as exc:
                    return ExecResult.failure(f"bash: {target}: {exc.strerror or exc}\n")
            if kind is RedirectionKind.STDOUT:
                out = sink
            else:
                err = sink

        stdout = stderr = ""
        for text, sink in ((result.stdout, out), (result.stderr, err)):
            if sink.kind is _SinkKind.STDOUT:
                stdout += text
            elif sink.kind is _SinkKind.STDERR:
                stderr += text
            elif sink.kind is _SinkKind.FILE and text:
                try:
                    await self._fs.append_file(sink.path, text)
                except OSError as exc:
                    return ExecResult.failure(f"bash: {sink.label}: {exc.strerror or exc}\n")
        return ExecResult(stdout, stderr, result.exit_code)

    # -- compound statements ------------------------------------------------------------

    async def _define_function(self, statement: FunctionDef, stdin: str, gate: _Gate) -> ExecResult:
        if not gate.allows():
            return await self._finish(ExecResult(exit_code=gate.previous), statement.tail, stdin)
        self._state.functions[statement.name] = statement.body
        self._logger.log(
            LogLevel.INFO,
            f"defined function {statement.name}",
            source="shell",
            depth=self._state.call_depth,
        )
        self._state.last_exit_code = 0
        return await self._finish(ExecResult(), statement.tail, stdin)

    async def _run_compound(
        self, statement: CompoundStatement, stdin: str, gate: _Gate
    ) -> ExecResult:
        """Run an if/for/while/until with its redirections and tail."""
        if not gate.allows():
            return await self._finish(ExecResult(exit_code=gate.previous), statement.tail, stdin)
        body_stdin, failure = await self._read_input(statement.redirections, stdin)
        if failure is not None:
            result = failure
        else:
            runner = self._compound_runners[type(statement)]
            result = await runner(statement, body_stdin)
            result = await self._apply_redirections(result, statement.redirections)
        self._state.last_exit_code = result.exit_code
        return await self._finish(result, statement.tail, stdin)

    async def _run_if(self, statement: IfStatement, stdin: str) -> ExecResult:
        out = _Output()
        for branch in statement.branches:
            if branch.condition is not None:
                condition = await self._run(branch.condition, stdin)
                out.add(condition, status=False)
                if condition.exit_code != 0:
                    continue
            out.add(await self._run(branch.body, stdin))
            break
        return out.result()

    async def _run_for(self, statement: ForStatement, stdin: str) -> ExecResult:
        state = self._state
        items = [
            item
            for token in tokenize(statement.list_text)
            if isinstance(token, Word)
            for item in expand_list_item(
                token, state.env, self._fs, state.cwd, last_exit_code=state.last_exit_code
            )
        ]
        out = _Output()
        counter = LoopCounter("for", self.limits)
        try:
            for item in items:
                if not counter.tick():
                    self._loop_exhausted(counter, out)
                    break
                state.env[statement.variable] = item
                out.add(await self._run(statement.body, stdin))
        finally:
            state.env.discard(statement.variable)
        return out.result()

    async def _run_while(self, statement: WhileStatement, stdin: str) -> ExecResult:
        return await self._run_conditional_loop(
            "while", statement.condition, statement.body, stdin, until=False
        )

    async def _run_until(self, statement: UntilStatement, stdin: str) -> ExecResult:
        return await self._run_conditional_loop(
            "until", statement.condition, statement.body, stdin, until=True
        )

    async def _run_conditional_loop(
        self, kind: str, condition: str, body: str, stdin: str, *, until: bool
    ) -> ExecResult:
        """Re-test *condition* before each pass; ``until`` inverts the test."""
        out = _Output()
        counter = LoopCounter(kind, self.limits)
        while True:
            if not counter.tick():
                self._loop_exhausted(counter, out)
                break
            result = await self._run(condition, stdin)
            out.add(result, status=False)
            if (result.exit_code == 0) == until:
                break
            out.add(await self._run(body, stdin))
        return out.result()

    def _loop_exhausted(self, counter: LoopCounter, out: _Output) -> None:
        self._logger.log(
            LogLevel.WARNING,
            counter.message.strip(),
            source="guard",
            depth=self._state.call_depth,
        )
        out.fail(counter.message)
