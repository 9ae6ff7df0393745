"""Hold SIGINT/SIGTERM while config files are being applied or rolled back.

Signals that arrive inside ``deferred_interrupts()`` are recorded and
re-raised on exit, once every target file is either committed or restored.
Python only lets the main thread install handlers, so elsewhere the block
runs unprotected and an interrupt can leave a best-effort partial state.
"""

from __future__ import annotations

import contextlib
import logging
import signal
import threading
from collections.abc import Iterator

logger = logging.getLogger(__name__)

DEFAULT_SIGNALS: tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)


@contextlib.contextmanager
def deferred_interrupts(
    signals: tuple[signal.Signals, ...] = DEFAULT_SIGNALS,
) -> Iterator[list[int]]:
    """Defer *signals* for the duration of the block.

    Yields the list of signal numbers received so far (useful in tests).
    """
    pending: list[int] = []
    if threading.current_thread() is not threading.main_thread():
        logger.debug("Not on the main thread; interrupts are not deferred")
        yield pending
        return

    def _record(signum: int, _frame: object) -> None:
        logger.warning(
            "Received %s during a config transaction; finishing before exit",
            signal.Signals(signum).name,
        )
        pending.append(signum)

    previous: dict[signal.Signals, object] = {}
    try:
        for signum in signals:
            previous[signum] = signal.signal(signum, _record)
        yield pending
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler if handler is not None else signal.SIG_DFL)
        for signum in dict.fromkeys(pending):
            signal.raise_signal(signum)
