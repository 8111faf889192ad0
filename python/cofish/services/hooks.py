"""Post-commit hooks.

Side effects that must only run after a primary transaction commits, and
must never change its outcome. Hooks run in registration order; each is
isolated, so one failing hook neither stops the rest nor reaches the caller.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from cofish.logging import get_logger

logger = get_logger(__name__)


@dataclass
class HookOutcome:
    name: str
    ok: bool
    result: Any = None
    error: str | None = None


@dataclass
class PostCommitHooks:
    """Ordered list of named callables run after commit."""

    hooks: list[tuple[str, Callable[[], Any]]] = field(default_factory=list)

    def add(self, name: str, fn: Callable[[], Any]) -> None:
        self.hooks.append((name, fn))

    def run(self) -> list[HookOutcome]:
        outcomes: list[HookOutcome] = []
        for name, fn in self.hooks:
            try:
                outcomes.append(HookOutcome(name=name, ok=True, result=fn()))
            except Exception as e:
                logger.warning(
                    "post_commit_hook_failed",
                    hook=name,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                outcomes.append(HookOutcome(name=name, ok=False, error=str(e)))
        return outcomes
