"""Cooperative cancellation for long-running worker loops."""

import logging
import signal
import threading
from types import FrameType
from typing import Iterable, Optional

logger = logging.getLogger(__name__)


class CancellationToken:
    """
    Signals a worker loop to stop between items.

    The token is owned by whoever runs the loop (a CLI process or a Celery
    task). ``wait`` doubles as an interruptible sleep so pauses between
    provider calls end as soon as cancellation is requested.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; returns True if cancelled meanwhile."""
        if seconds <= 0:
            return self.cancelled
        return self._event.wait(seconds)

    def install_signal_handlers(
        self, signals: Iterable[signal.Signals] = (signal.SIGTERM, signal.SIGINT)
    ) -> None:
        """Cancel this token on the given signals. Must be called from the main thread."""

        def _handler(signum: int, _frame: Optional[FrameType]) -> None:
            name = signal.Signals(signum).name
            logger.info("Received %s, stopping after current item", name)
            self.cancel(reason=name)

        for sig in signals:
            signal.signal(sig, _handler)
