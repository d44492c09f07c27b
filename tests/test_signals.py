"""Unit tests for ok_linecheck._signals."""

import signal
import threading

import pytest

from ok_linecheck import _signals


@pytest.fixture
def recorder():
    received = []
    previous = signal.signal(signal.SIGINT, lambda s, f: received.append(s))
    yield received
    signal.signal(signal.SIGINT, previous)


def test_signal_held_until_exit(recorder):
    handler = signal.getsignal(signal.SIGINT)
    with _signals.deferring_signals():
        signal.raise_signal(signal.SIGINT)
        assert recorder == []
    assert recorder == [signal.SIGINT]
    assert signal.getsignal(signal.SIGINT) is handler


def test_signal_delivered_after_exception(recorder):
    with pytest.raises(RuntimeError):
        with _signals.deferring_signals():
            signal.raise_signal(signal.SIGINT)
            raise RuntimeError("mid-sequence failure")
    assert recorder == [signal.SIGINT]


def test_nothing_pending_nothing_delivered(recorder):
    with _signals.deferring_signals():
        pass
    assert recorder == []


def test_default_handler_raises_keyboard_interrupt():
    previous = signal.signal(signal.SIGINT, signal.default_int_handler)
    try:
        with pytest.raises(KeyboardInterrupt):
            with _signals.deferring_signals():
                signal.raise_signal(signal.SIGINT)
                finished = True
        assert finished
    finally:
        signal.signal(signal.SIGINT, previous)


def test_ignored_signal_stays_ignored():
    previous = signal.signal(signal.SIGINT, signal.SIG_IGN)
    try:
        with _signals.deferring_signals():
            signal.raise_signal(signal.SIGINT)
        assert signal.getsignal(signal.SIGINT) == signal.SIG_IGN
    finally:
        signal.signal(signal.SIGINT, previous)


def test_noop_off_main_thread(recorder):
    seen = []

    def worker():
        with _signals.deferring_signals():
            seen.append(signal.getsignal(signal.SIGINT))

    thread = threading.Thread(target=worker)
    thread.start()
    thread.join()
    assert seen == [signal.getsignal(signal.SIGINT)]
