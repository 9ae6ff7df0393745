"""Tests for transaction/interrupts.py -- signal deferral during apply."""

from __future__ import annotations

import signal
import threading

from mcp_weave.transaction.interrupts import deferred_interrupts


class TestDeferredInterrupts:
    def setup_method(self):
        self.received: list[int] = []
        self.original = signal.signal(signal.SIGUSR1, self._handler)

    def teardown_method(self):
        signal.signal(signal.SIGUSR1, self.original)

    def _handler(self, signum, _frame):
        self.received.append(signum)

    def test_signal_delivered_after_block(self):
        with deferred_interrupts(signals=(signal.SIGUSR1,)) as pending:
            signal.raise_signal(signal.SIGUSR1)
            assert pending == [signal.SIGUSR1]
            assert self.received == []

        assert self.received == [signal.SIGUSR1]

    def test_repeated_signal_delivered_once(self):
        with deferred_interrupts(signals=(signal.SIGUSR1,)):
            signal.raise_signal(signal.SIGUSR1)
            signal.raise_signal(signal.SIGUSR1)

        assert self.received == [signal.SIGUSR1]

    def test_handler_restored(self):
        with deferred_interrupts(signals=(signal.SIGUSR1,)):
            assert signal.getsignal(signal.SIGUSR1) != self._handler

        assert signal.getsignal(signal.SIGUSR1) == self._handler

    def test_handler_restored_on_exception(self):
        try:
            with deferred_interrupts(signals=(signal.SIGUSR1,)):
                raise RuntimeError("boom")
        except RuntimeError:
            pass

        assert signal.getsignal(signal.SIGUSR1) == self._handler

    def test_no_signal_no_delivery(self):
        with deferred_interrupts(signals=(signal.SIGUSR1,)) as pending:
            pass

        assert pending == []
        assert self.received == []

    def test_off_main_thread_is_passthrough(self):
        seen: dict[str, object] = {}

        def worker():
            with deferred_interrupts(signals=(signal.SIGUSR1,)) as pending:
                seen["pending"] = pending
                seen["handler"] = signal.getsignal(signal.SIGUSR1)

        thread = threading.Thread(target=worker)
        thread.start()
        thread.join()

        assert seen["pending"] == []
        assert seen["handler"] == self._handler
