from __future__ import annotations

import signal
import threading


class CancellationToken:
    """One-shot stop flag, set from outside the control loop."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def install_sigint_handler(token: CancellationToken) -> None:
    def _handler(signum, frame):
        token.cancel()

    signal.signal(signal.SIGINT, _handler)
