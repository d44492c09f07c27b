import contextlib
import logging
import threading

import pydantic

from ok_linecheck import _config
from ok_linecheck import _driver
from ok_linecheck import _exceptions
from ok_linecheck import _signals

log = logging.getLogger("ok_linecheck.transport")
data_log = logging.getLogger(log.name + ".data")


class SerialTransport(contextlib.AbstractContextManager):
    """A serial port with explicit open/close and timeout-bounded I/O.

    Every method that touches the driver handle holds the same lock, so
    close() waits for an in-flight read() or write() to finish (at most
    config.timeout_ms). open() and close() also hold back SIGINT/SIGTERM
    while they run so the handle is never left half set up. Held-back
    signals are delivered after the lock is released.
    """

    def __init__(
        self,
        config: _config.PortConfiguration | None = None,
        driver: _driver.SerialDriver | None = None,
    ):
        self._lock = threading.RLock()
        self._handle: object | None = None
        self._driver = driver or _driver.PySerialDriver()
        self.config = config or _config.PortConfiguration()
        self.config._bind_owner(self)

    def __del__(self) -> None:
        if getattr(self, "_handle", None) is not None:
            self._close_locked()

    def __enter__(self) -> "SerialTransport":
        self.open()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "open" if self._handle is not None else "closed"
        return f"SerialTransport({self.config.path!r}, {state})"

    @property
    def is_open(self) -> bool:
        """Lifecycle state as last known, without probing the driver"""

        return self._handle is not None

    def open(self) -> None:
        """Opens (or reopens) the port with the current configuration"""

        with _signals.deferring_signals(), self._lock:
            if self._handle is not None:
                log.debug("Reopening %s", self.config.path)
                self._close_locked()

            cfg = self.config
            log.debug("Opening %s (%s)", cfg.path, cfg)
            with contextlib.ExitStack() as cleanup:
                handle = self._driver.acquire(cfg.path)
                cleanup.callback(self._release, handle)
                self._driver.configure(
                    handle, cfg.baud, cfg.data_bits, cfg.stop_bits, cfg.parity
                )
                timeout_ms = cfg.timeout_ms
                self._driver.set_timeouts(handle, timeout_ms, timeout_ms)
                self._driver.purge(handle)
                cleanup.pop_all()

            self._handle = handle

    def close(self) -> None:
        """Releases the port; closing a closed port does nothing"""

        with _signals.deferring_signals(), self._lock:
            self._close_locked()

    def query_state(self) -> bool:
        """True if open; closes first if the driver lost the device"""

        with self._lock:
            if self._handle is not None and self._driver.access_lost():
                log.warning("Lost access to %s, closing", self.config.path)
                self.close()
            return self._handle is not None

    @pydantic.validate_call
    def read(self, size: int) -> bytes:
        """Reads exactly 'size' bytes, blocking up to config.timeout_ms"""

        with self._lock:
            handle = self._require_open("read")
            result = self._driver.read(handle, size)

        data, port = result.data, self.config.path
        data_log.debug("Read %d/%db", len(data), size)
        if len(data) == size and result.succeeded:
            return data
        elif not data and (result.timed_out or not result.succeeded):
            raise _exceptions.SerialReadTimeout("Read timeout", port)
        elif result.timed_out or not result.succeeded:
            message = f"Partial read w/timeout ({len(data)}/{size}b)"
            raise _exceptions.SerialPartialRead(message, port)
        else:
            message = f"Partial read ({len(data)}/{size}b)"
            raise _exceptions.SerialPartialRead(message, port)

    @pydantic.validate_call
    def write(self, data: bytes) -> None:
        """Writes all of 'data', blocking up to config.timeout_ms"""

        with self._lock:
            handle = self._require_open("write")
            result = self._driver.write(handle, data)

        sent, size, port = result.sent, len(data), self.config.path
        data_log.debug("Wrote %d/%db", sent, size)
        if sent == size and result.succeeded:
            return
        elif not sent and (result.timed_out or not result.succeeded):
            raise _exceptions.SerialWriteTimeout("Write timeout", port)
        elif result.timed_out or not result.succeeded:
            message = f"Partial write w/timeout ({sent}/{size}b)"
            raise _exceptions.SerialPartialWrite(message, port)
        else:
            message = f"Partial write ({sent}/{size}b)"
            raise _exceptions.SerialPartialWrite(message, port)

    def set_break(self) -> None:
        with self._lock:
            handle = self._require_open("set break on")
            if not self._driver.set_break(handle):
                message, port = "Can't set break", self.config.path
                raise _exceptions.SerialCannotSetBreak(message, port)
            log.debug("Break set on %s", self.config.path)

    def reset_break(self) -> None:
        with self._lock:
            handle = self._require_open("reset break on")
            if not self._driver.clear_break(handle):
                message, port = "Can't reset break", self.config.path
                raise _exceptions.SerialCannotResetBreak(message, port)
            log.debug("Break reset on %s", self.config.path)

    def clean(self) -> None:
        """Discards unread input"""

        with self._lock:
            if self._handle is not None:
                self._driver.purge(self._handle)

    def _require_open(self, action: str) -> object:
        """Must be run with self._lock held."""

        if not self.query_state():
            message = f"Can't {action} port when it's closed"
            raise _exceptions.SerialNotOpen(message, self.config.path)
        assert self._handle is not None
        return self._handle

    def _close_locked(self) -> None:
        handle, self._handle = self._handle, None
        if handle is not None:
            log.debug("Closing %s", self.config.path)
            self._release(handle)

    def _release(self, handle: object) -> None:
        try:
            self._driver.release(handle)
        except OSError:
            log.warning("Can't release %s", self.config.path, exc_info=True)
