"""Blocking wait for operating-system termination signals."""

import signal
import threading
from typing import Any, Optional

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownSignal:
    """Lets the main thread sleep until SIGINT/SIGTERM arrives or ``trigger`` is called.

    Handlers must be installed from the main thread.
    """

    def __init__(self, signals: tuple = SHUTDOWN_SIGNALS) -> None:
        self._signals = signals
        self._event = threading.Event()
        self._previous_handlers: dict[int, Any] = {}
        self.received: Optional[int] = None

    def install(self) -> None:
        for signum in self._signals:
            self._previous_handlers[signum] = signal.signal(signum, self._handle)

    def restore(self) -> None:
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers.clear()

    def _handle(self, signum: int, _frame) -> None:
        self.received = signum
        self._event.set()

    def trigger(self) -> None:
        """Wake the waiting thread without a signal."""
        self._event.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until a shutdown signal or trigger; False on timeout."""
        return self._event.wait(timeout)

    @property
    def signal_name(self) -> Optional[str]:
        if self.received is None:
            return None
        return signal.Signals(self.received).name

    def __enter__(self) -> "ShutdownSignal":
        self.install()
        return self

    def __exit__(self, *exc_info) -> None:
        self.restore()
