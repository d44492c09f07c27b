import contextlib
import logging
import signal
import threading

log = logging.getLogger("ok_linecheck.signals")

DEFERRED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


@contextlib.contextmanager
def deferring_signals(signums=DEFERRED_SIGNALS):
    """Holds back 'signums' until the block exits, then re-delivers them.

    Only the main thread receives Python signals, so elsewhere this does
    nothing. Previous handlers are restored on every exit path.
    """

    if threading.current_thread() is not threading.main_thread():
        yield
        return

    pending: list[tuple[int, object]] = []
    previous = {}
    for signum in signums:
        handler = lambda s, f: pending.append((s, f))  # noqa: E731
        previous[signum] = signal.signal(signum, handler) or signal.SIG_DFL

    try:
        yield
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)

        for signum, frame in pending:
            handler = previous[signum]
            log.debug("Delivering deferred signal %d", signum)
            if callable(handler):
                handler(signum, frame)
            elif handler == signal.SIG_DFL:
                signal.raise_signal(signum)
