"""Resource guard — caps that keep untrusted scripts from running away.

Three independent limits, each configurable per shell:

- **max_call_depth** — nested function calls.  Exceeding it fails only
  the offending call.
- **max_command_count** — commands run during one top-level ``exec``.
  Exceeding it aborts the whole top-level call.
- **max_loop_iterations** — iterations of each individual loop.
  Exceeding it stops only that loop.

Every message names the limit and the constructor option that raises
it, so a user who hits one knows what to change.
"""

from dataclasses import dataclass, fields

DEFAULT_MAX_CALL_DEPTH = 100
DEFAULT_MAX_COMMAND_COUNT = 10_000
DEFAULT_MAX_LOOP_ITERATIONS = 10_000


@dataclass(frozen=True)
class ExecutionLimits:
    """The three resource caps, validated to be non-negative."""

    max_call_depth: int = DEFAULT_MAX_CALL_DEPTH
    max_command_count: int = DEFAULT_MAX_COMMAND_COUNT
    max_loop_iterations: int = DEFAULT_MAX_LOOP_ITERATIONS

    def __post_init__(self) -> None:
        """Reject negative limits.

        Raises:
            ValueError: If any limit is negative.

        """
        for f in fields(self):
            if getattr(self, f.name) < 0:
                msg = f"{f.name} must be non-negative"
                raise ValueError(msg)

    @classmethod
    def from_options(
        cls,
        *,
        max_call_depth: int | None = None,
        max_command_count: int | None = None,
        max_loop_iterations: int | None = None,
    ) -> "ExecutionLimits":
        """Build limits from optional overrides; ``None`` keeps the default."""
        return cls(
            max_call_depth=DEFAULT_MAX_CALL_DEPTH if max_call_depth is None else max_call_depth,
            max_command_count=(
                DEFAULT_MAX_COMMAND_COUNT if max_command_count is None else max_command_count
            ),
            max_loop_iterations=(
                DEFAULT_MAX_LOOP_ITERATIONS if max_loop_iterations is None else max_loop_iterations
            ),
        )

    def call_depth_message(self, name: str) -> str:
        """Return the stderr text for a function nested too deeply."""
        return (
            f"bash: {name}: maximum recursion depth ({self.max_call_depth}) exceeded. "
            "Increase with max_call_depth option.\n"
        )

    def command_count_message(self) -> str:
        """Return the stderr text for too many commands in one ``exec``."""
        return (
            f"bash: maximum command count ({self.max_command_count}) exceeded "
            "(possible infinite loop). Increase with max_command_count option.\n"
        )

    def loop_message(self, kind: str) -> str:
        """Return the stderr text for a ``for``/``while``/``until`` loop cap."""
        return (
            f"bash: {kind} loop: too many iterations ({self.max_loop_iterations}). "
            "Increase with max_loop_iterations option.\n"
        )


class LoopCounter:
    """Iteration budget for one loop instance."""

    def __init__(self, kind: str, limits: ExecutionLimits) -> None:
        """Start a counter for a loop of the given kind."""
        self.kind = kind
        self._limits = limits
        self.iterations = 0

    def tick(self) -> bool:
        """Count one iteration; return False once the budget is spent."""
        if self.iterations >= self._limits.max_loop_iterations:
            return False
        self.iterations += 1
        return True

    @property
    def message(self) -> str:
        """Return the stderr text reported when the budget runs out."""
        return self._limits.loop_message(self.kind)
