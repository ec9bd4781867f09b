"""Ordered lifecycle hooks for a test run.

Hooks are registered against a phase with a precedence and fired
explicitly by the run orchestrator, highest precedence first. Hooks with
equal precedence fire in registration order.
"""

from __future__ import annotations

import itertools
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum

import structlog

logger = structlog.get_logger()


class LifecyclePhase(StrEnum):
    """Checkpoints in a test run."""

    BEFORE_SUITE = "before_suite"
    AFTER_SUITE = "after_suite"


@dataclass(frozen=True)
class LifecycleHook:
    """A callback bound to a phase."""

    phase: LifecyclePhase
    callback: Callable[[], object]
    precedence: int = 0
    name: str = ""
    sequence: int = field(default=0, compare=False)


class LifecycleRegistry:
    """Registry of lifecycle hooks.

    Failures in ``BEFORE_SUITE`` hooks propagate and stop the phase, since
    the suite cannot run without them. ``AFTER_SUITE`` hooks are best effort:
    a failure is logged and the remaining hooks still run.
    """

    def __init__(self) -> None:
        self._hooks: list[LifecycleHook] = []
        self._sequence = itertools.count()

    def register(
        self,
        phase: LifecyclePhase,
        callback: Callable[[], object],
        precedence: int = 0,
        name: str | None = None,
    ) -> LifecycleHook:
        """Register a callback for a phase.

        Args:
            phase: Phase the callback belongs to.
            callback: Zero-argument callable.
            precedence: Higher values fire earlier.
            name: Label used in logs.

        Returns:
            The registered hook.
        """
        hook = LifecycleHook(
            phase=phase,
            callback=callback,
            precedence=precedence,
            name=name or getattr(callback, "__name__", repr(callback)),
            sequence=next(self._sequence),
        )
        self._hooks.append(hook)
        logger.debug("registered_lifecycle_hook", phase=phase.value, name=hook.name, precedence=precedence)
        return hook

    def hooks(self, phase: LifecyclePhase) -> list[LifecycleHook]:
        """Hooks for a phase in firing order."""
        selected = [hook for hook in self._hooks if hook.phase == phase]
        return sorted(selected, key=lambda hook: (-hook.precedence, hook.sequence))

    def fire(self, phase: LifecyclePhase) -> None:
        """Invoke every hook registered for a phase.

        Raises:
            Exception: Whatever a ``BEFORE_SUITE`` hook raises.
        """
        for hook in self.hooks(phase):
            logger.debug("firing_lifecycle_hook", phase=phase.value, name=hook.name)
            if phase is LifecyclePhase.AFTER_SUITE:
                try:
                    hook.callback()
                except Exception as e:
                    logger.error("lifecycle_hook_failed", phase=phase.value, name=hook.name, error=str(e))
            else:
                hook.callback()
