"""Process termination hooks.

Callbacks registered here run once when the interpreter exits, including
when the process is stopped with SIGTERM: the default SIGTERM disposition is
replaced with one that raises :class:`TerminationSignal`, so the main thread
unwinds its ``finally`` blocks and ``atexit`` then runs the callbacks. No
callback ever runs inside a signal handler.

``TerminationSignal`` is a ``KeyboardInterrupt``: pytest ends the session on
it, while a ``SystemExit`` raised inside a test only fails that test.
"""

from __future__ import annotations

import atexit
import signal
import threading
from collections.abc import Callable
from types import FrameType

import structlog

logger = structlog.get_logger()

SIGNAL_EXIT_BASE = 128


class TerminationSignal(KeyboardInterrupt):
    """Raised in the main thread when the process receives a termination signal."""

    def __init__(self, signum: int) -> None:
        self.signum = signum
        self.exit_code = SIGNAL_EXIT_BASE + signum
        super().__init__(f"terminated by {signal.Signals(signum).name}")


def _exit_on_signal(signum: int, frame: FrameType | None) -> None:
    logger.warning("termination_signal_received", signal=signal.Signals(signum).name)
    raise TerminationSignal(signum)


class TerminationHooks:
    """Registry of callbacks run at process exit.

    Callbacks run in reverse registration order. A failing callback is
    logged and does not stop the others.
    """

    def __init__(self, signals: tuple[signal.Signals, ...] = (signal.SIGTERM,)) -> None:
        self._signals = signals
        self._callbacks: list[tuple[str, Callable[[], object]]] = []
        self._lock = threading.Lock()
        self._installed = False

    def register(self, callback: Callable[[], object], name: str | None = None) -> None:
        """Register a callback and make sure exit handling is installed.

        Args:
            callback: Zero-argument callable.
            name: Label used in logs.
        """
        label = name or getattr(callback, "__name__", repr(callback))
        with self._lock:
            self._callbacks.append((label, callback))
        self.install()
        logger.debug("registered_termination_hook", name=label)

    def unregister(self, callback: Callable[[], object]) -> bool:
        """Remove a previously registered callback.

        Returns:
            True if the callback was registered.
        """
        with self._lock:
            for i, (_, registered) in enumerate(self._callbacks):
                if registered is callback:
                    del self._callbacks[i]
                    return True
        return False

    def install(self) -> None:
        """Register with atexit and take over SIGTERM if nobody else has."""
        with self._lock:
            if self._installed:
                return
            self._installed = True
        atexit.register(self.run)

        if threading.current_thread() is not threading.main_thread():
            logger.debug("signal_handlers_skipped", reason="not main thread")
            return
        for sig in self._signals:
            if signal.getsignal(sig) in (signal.SIG_DFL, None):
                signal.signal(sig, _exit_on_signal)
            else:
                logger.debug("signal_handler_present", signal=sig.name)

    def run(self) -> None:
        """Run and drop every registered callback."""
        with self._lock:
            callbacks, self._callbacks = self._callbacks, []
        for label, callback in reversed(callbacks):
            try:
                callback()
            except Exception as e:
                logger.error("termination_hook_failed", name=label, error=str(e))

    def __len__(self) -> int:
        with self._lock:
            return len(self._callbacks)


_default_hooks: TerminationHooks | None = None


def default_termination_hooks() -> TerminationHooks:
    """Process-wide termination hook registry."""
    global _default_hooks
    if _default_hooks is None:
        _default_hooks = TerminationHooks()
    return _default_hooks
