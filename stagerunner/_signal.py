"""Double-Ctrl-C cancellation handler for pipeline runs."""

from __future__ import annotations

import os
import signal
import sys
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager

_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def install_shutdown_handler(
    stop_event: threading.Event,
    *,
    on_first_signal: Callable[[], None] | None = None,
) -> threading.Event:
    """Install a SIGINT/SIGTERM handler with double-signal force-exit.

    First signal: calls *on_first_signal* (if given), then sets *stop_event*.
    Second signal: calls ``os._exit(130)`` immediately.

    Returns the ``_shutting_down`` event for external inspection.
    """
    shutting_down = threading.Event()

    def _handler(signum: int, frame: object) -> None:
        if shutting_down.is_set():
            print("\nForce shutdown.", file=sys.stderr, flush=True)
            os._exit(130)
        shutting_down.set()
        if on_first_signal is not None:
            on_first_signal()
        stop_event.set()

    for sig in _SIGNALS:
        signal.signal(sig, _handler)
    return shutting_down


@contextmanager
def shutdown_signals(
    stop_event: threading.Event,
    *,
    on_first_signal: Callable[[], None] | None = None,
) -> Iterator[threading.Event]:
    """Scope :func:`install_shutdown_handler` to a block, restoring previous handlers.

    Outside the main thread signal handlers cannot be installed; the block
    then runs without them and only an explicit ``stop_event.set()`` cancels.
    """
    if threading.current_thread() is not threading.main_thread():
        yield threading.Event()
        return

    previous = {sig: signal.getsignal(sig) for sig in _SIGNALS}
    try:
        yield install_shutdown_handler(stop_event, on_first_signal=on_first_signal)
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
