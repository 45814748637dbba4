"""
Process termination handling.

The updater runs in a worker thread while the main thread dispatches
termination signals. Signal handlers only enqueue the signal number; the
main thread then asks the worker to exit, wakes it from its inter-cycle
sleep and joins it, re-raising any error the worker ended with.

An uncaught exception in a worker thread triggers the same shutdown through
`threading.excepthook`, and after the first termination signal the default
OS handlers are restored so that a second signal kills the process even if
the graceful shutdown stalls.
"""

from __future__ import annotations

import logging
import queue
import signal
import threading
from typing import TYPE_CHECKING

from ddns_updater.exceptions import DDNSError

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import FrameType
    from typing import Any, Final


# Signals that request process termination
TERM_SIGNALS: Final[tuple[signal.Signals, ...]] = (
    signal.SIGTERM,
    signal.SIGQUIT,
    signal.SIGINT,
)

# Seconds between checks of the dispatch queue while waiting for signals
_DISPATCH_POLL_INTERVAL: Final[float] = 0.5


logger = logging.getLogger(__name__)


class WorkerThread(threading.Thread):
    """
    Thread that keeps the exception its target ended with.

    Expected failures (`DDNSError`) are only stored and reported through
    `TerminationHandler.join_threads`. Anything else is re-raised after
    being stored so that it also reaches `threading.excepthook`.

    Attributes
    ----------
    error : BaseException | None
        The exception raised by the target, if any.
    """

    def __init__(self, target: Callable[[], None], name: str) -> None:
        super().__init__(name=name, daemon=True)
        self._worker_target = target
        self.error: BaseException | None = None

    def run(self) -> None:
        try:
            self._worker_target()
        except DDNSError as e:
            self.error = e
        except BaseException as e:
            self.error = e
            raise


class TerminationHandler:
    """
    Shared shutdown state of the daemon.

    One handler is created at startup and passed to every long-lived
    component. It owns the exit flag, the signal subscription, the worker
    thread handle and the event the worker sleeps on.

    Parameters
    ----------
    forceful : bool, optional
        Restore the default OS handlers after the first termination signal
        so that a repeated signal kills the process.
    """

    def __init__(self, *, forceful: bool = True) -> None:
        self._forceful = forceful
        self._should_exit = threading.Event()
        self._exit_lock = threading.Lock()
        self._wakeup = threading.Event()
        # SimpleQueue.put is reentrant, so signal handlers may call it
        self._signals: queue.SimpleQueue[int | None] = queue.SimpleQueue()
        self._updater_thread: WorkerThread | None = None
        self._thread_lock = threading.Lock()
        self._previous_handlers: dict[int, Any] = {}
        self._orig_excepthook: Callable[[threading.ExceptHookArgs], Any] | None = None

    # Exit flag

    def should_exit(self) -> bool:
        """Return True once process termination has been requested."""
        return self._should_exit.is_set()

    def notify_exit(self) -> bool:
        """
        Request process termination and wake the worker.

        Only the first call has an effect; later calls (a second signal, the
        panic hook firing during shutdown) return immediately.

        Returns
        -------
        bool
            True if this call requested termination, False if it already was.
        """
        with self._exit_lock:
            if self._should_exit.is_set():
                return False
            self._should_exit.set()

        logger.debug("Notifying all threads to exit")
        self.unpark_threads()
        return True

    def notify_exit_and_stop_signal_handling(self) -> None:
        """Request termination and stop the main thread's signal dispatch."""
        self.notify_exit()
        logger.debug("Stopping signal processing")
        self._signals.put(None)

    # Worker parking

    def park(self, timeout: float) -> None:
        """
        Block the calling worker until unparked or the timeout elapses.

        Parameters
        ----------
        timeout : float
            Maximum time to block in seconds.
        """
        self._wakeup.wait(timeout)
        self._wakeup.clear()

    def unpark_threads(self) -> None:
        """Wake the worker from `park`."""
        logger.debug("Unparking updater thread")
        self._wakeup.set()

    def sleep(self, duration: float, clock: Callable[[], float]) -> bool:
        """
        Sleep for `duration` seconds unless termination is requested.

        Spurious wake-ups resume sleeping for the remaining time instead of
        restarting the full duration.

        Parameters
        ----------
        duration : float
            Time to sleep in seconds.
        clock : Callable[[], float]
            Monotonic clock.

        Returns
        -------
        bool
            True if the sleep was interrupted by a termination request.
        """
        if self.should_exit():
            return True

        start = clock()
        remaining = duration
        while True:
            self.park(remaining)
            if self.should_exit():
                return True
            elapsed = clock() - start
            if elapsed >= duration:
                return False
            logger.debug("Woken after %.3fs, resuming sleep", elapsed)
            remaining = duration - elapsed

    # Worker thread

    def set_updater_thread(self, thread: WorkerThread) -> None:
        """Register the updater worker thread."""
        with self._thread_lock:
            self._updater_thread = thread

    def join_threads(self) -> None:
        """
        Join the updater thread and re-raise the error it ended with.

        Raises
        ------
        BaseException
            The exception the updater thread ended with, if any.
        """
        logger.debug("Joining all threads")
        with self._thread_lock:
            thread, self._updater_thread = self._updater_thread, None
        if thread is None:
            return
        thread.join()
        logger.debug("Updater thread successfully shut down")
        if thread.error is not None:
            raise thread.error

    # Signals

    def subscribe_signals(self) -> None:
        """
        Install handlers for termination signals and SIGHUP.

        Must be called from the main thread.
        """
        for sig in (*TERM_SIGNALS, signal.SIGHUP):
            self._previous_handlers[sig] = signal.signal(sig, self._on_signal)

    def restore_signals(self) -> None:
        """Restore the signal handlers replaced by `subscribe_signals`."""
        for sig, previous in self._previous_handlers.items():
            # None means the previous handler was not installed from Python
            if previous is not None:
                signal.signal(sig, previous)
        self._previous_handlers.clear()

    def _on_signal(self, signum: int, _frame: FrameType | None) -> None:
        if self._forceful and signum in TERM_SIGNALS:
            restore_default_term_handlers()
        self._signals.put(signum)

    def setup_exit_panic_hook(self) -> None:
        """
        Shut down when any thread dies from an uncaught exception.

        The previous `threading.excepthook` still runs afterwards.
        """
        orig_hook = threading.excepthook
        self._orig_excepthook = orig_hook

        def hook(args: threading.ExceptHookArgs) -> None:
            logger.debug("Invoked exit panic hook")
            self.notify_exit_and_stop_signal_handling()
            orig_hook(args)

        threading.excepthook = hook

    def remove_exit_panic_hook(self) -> None:
        """Reinstate the `threading.excepthook` replaced by the panic hook."""
        if self._orig_excepthook is not None:
            threading.excepthook = self._orig_excepthook
            self._orig_excepthook = None

    def handle_term_signals_gracefully(self) -> None:
        """
        Dispatch signals until termination, then join the worker.

        SIGHUP is logged and ignored. A termination signal, or the worker
        stopping signal handling by itself, ends the dispatch loop.

        Raises
        ------
        BaseException
            The exception the updater thread ended with, if any.
        """
        while True:
            try:
                signum = self._signals.get(timeout=_DISPATCH_POLL_INTERVAL)
            except queue.Empty:
                continue

            if signum is None:
                logger.debug("Signal processing stopped")
                break

            signal_name = _signal_name(signum)
            logger.info("Received signal: %s", signal_name)
            if signum == signal.SIGHUP:
                logger.info("Ignoring signal because config reloading is not yet supported")
                continue

            logger.info("Starting process termination due to received signal")
            self.notify_exit()
            break

        self.join_threads()
        logger.info("All threads shut down. Process will now exit")


def restore_default_term_handlers() -> None:
    """Reset termination signals to the OS default action (terminate)."""
    for sig in TERM_SIGNALS:
        signal.signal(sig, signal.SIG_DFL)


def _signal_name(signum: int) -> str:
    try:
        return signal.Signals(signum).name
    except ValueError:
        return str(signum)
