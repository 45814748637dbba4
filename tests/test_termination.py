"""Tests for process termination handling."""

from __future__ import annotations

import os
import signal
import threading
import time

import pytest

from ddns_updater.exceptions import CircuitBreakerError
from ddns_updater.termination import TerminationHandler, WorkerThread


class TestSleep:
    """Tests for the interruptible sleep."""

    def test_full_duration(self):
        handler = TerminationHandler(forceful=False)
        start = time.monotonic()
        assert handler.sleep(0.05, time.monotonic) is False
        assert time.monotonic() - start >= 0.05

    def test_exit_already_requested(self):
        handler = TerminationHandler(forceful=False)
        handler.notify_exit()
        start = time.monotonic()
        assert handler.sleep(600, time.monotonic) is True
        assert time.monotonic() - start < 1

    def test_notify_wakes_sleeper(self):
        handler = TerminationHandler(forceful=False)
        result = {}

        def sleeper():
            result["interrupted"] = handler.sleep(600, time.monotonic)

        thread = threading.Thread(target=sleeper)
        start = time.monotonic()
        thread.start()
        time.sleep(0.1)
        handler.notify_exit()
        thread.join(timeout=5)

        assert not thread.is_alive()
        assert result["interrupted"] is True
        assert time.monotonic() - start < 2

    def test_spurious_wake_resumes_remaining_time(self):
        handler = TerminationHandler(forceful=False)
        result = {}

        def sleeper():
            start = time.monotonic()
            result["interrupted"] = handler.sleep(0.3, time.monotonic)
            result["elapsed"] = time.monotonic() - start

        thread = threading.Thread(target=sleeper)
        thread.start()
        time.sleep(0.05)
        handler.unpark_threads()
        thread.join(timeout=5)

        assert result["interrupted"] is False
        assert result["elapsed"] >= 0.3
        assert result["elapsed"] < 0.6


class TestNotifyExit:
    """Tests for the exit flag."""

    def test_idempotent(self):
        handler = TerminationHandler(forceful=False)
        assert handler.should_exit() is False
        assert handler.notify_exit() is True
        assert handler.notify_exit() is False
        assert handler.should_exit() is True


class TestJoinThreads:
    """Tests for joining the updater thread."""

    def test_no_thread(self):
        TerminationHandler(forceful=False).join_threads()

    def test_reraises_worker_error(self):
        handler = TerminationHandler(forceful=False)

        def fail():
            msg = "too many failures"
            raise CircuitBreakerError(msg)

        thread = WorkerThread(target=fail, name="updater")
        handler.set_updater_thread(thread)
        thread.start()

        with pytest.raises(CircuitBreakerError, match="too many failures"):
            handler.join_threads()


class TestSignalDispatch:
    """Tests for signal dispatch on the main thread."""

    def test_sighup_ignored(self, caplog):
        handler = TerminationHandler(forceful=False)
        handler._on_signal(signal.SIGHUP, None)
        handler._on_signal(signal.SIGTERM, None)

        with caplog.at_level("INFO", logger="ddns_updater.termination"):
            handler.handle_term_signals_gracefully()

        assert "Received signal: SIGHUP" in caplog.text
        assert "Ignoring signal" in caplog.text
        assert "Received signal: SIGTERM" in caplog.text
        assert handler.should_exit() is True

    def test_worker_stops_dispatch(self):
        handler = TerminationHandler(forceful=False)
        thread = WorkerThread(target=handler.notify_exit_and_stop_signal_handling, name="updater")
        handler.set_updater_thread(thread)
        thread.start()

        handler.handle_term_signals_gracefully()

        assert handler.should_exit() is True
        assert not thread.is_alive()

    def test_forceful_restores_default_handlers(self, monkeypatch):
        calls = []
        monkeypatch.setattr(
            "ddns_updater.termination.restore_default_term_handlers",
            lambda: calls.append("restored"),
        )
        handler = TerminationHandler(forceful=True)

        handler._on_signal(signal.SIGHUP, None)
        assert calls == []
        handler._on_signal(signal.SIGINT, None)
        assert calls == ["restored"]

    def test_real_signals(self):
        handler = TerminationHandler(forceful=False)
        previous = signal.getsignal(signal.SIGTERM)
        handler.subscribe_signals()
        try:
            os.kill(os.getpid(), signal.SIGHUP)
            os.kill(os.getpid(), signal.SIGTERM)
            handler.handle_term_signals_gracefully()
        finally:
            handler.restore_signals()

        assert handler.should_exit() is True
        assert signal.getsignal(signal.SIGTERM) is previous


class TestExitPanicHook:
    """Tests for shutting down when a thread dies unexpectedly."""

    def test_uncaught_exception_triggers_shutdown(self, monkeypatch):
        seen = []
        monkeypatch.setattr(threading, "excepthook", lambda args: seen.append(args.exc_type))
        handler = TerminationHandler(forceful=False)
        handler.setup_exit_panic_hook()
        try:

            def crash():
                msg = "unexpected"
                raise RuntimeError(msg)

            thread = WorkerThread(target=crash, name="updater")
            handler.set_updater_thread(thread)
            thread.start()

            with pytest.raises(RuntimeError, match="unexpected"):
                handler.handle_term_signals_gracefully()
        finally:
            handler.remove_exit_panic_hook()

        assert handler.should_exit() is True
        assert seen == [RuntimeError]

    def test_expected_error_skips_hook(self, monkeypatch):
        seen = []
        monkeypatch.setattr(threading, "excepthook", lambda args: seen.append(args.exc_type))

        def fail():
            msg = "stop"
            raise CircuitBreakerError(msg)

        thread = WorkerThread(target=fail, name="updater")
        thread.start()
        thread.join()

        assert isinstance(thread.error, CircuitBreakerError)
        assert seen == []
