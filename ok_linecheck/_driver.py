"""Driver boundary between SerialTransport and the operating system"""

import abc
import contextlib
import errno
import logging
import typing

import serial

from ok_linecheck import _config
from ok_linecheck import _exceptions
from ok_linecheck import _locking

log = logging.getLogger("ok_linecheck.driver")

# Errors that mean the device went away (unplugged USB adapter and the like)
ACCESS_LOST_ERRNOS = frozenset(
    (errno.EIO, errno.ENXIO, errno.ENODEV, errno.EACCES)
)


class ReadResult(typing.NamedTuple):
    data: bytes
    timed_out: bool
    succeeded: bool


class WriteResult(typing.NamedTuple):
    sent: int
    timed_out: bool
    succeeded: bool


class SerialDriver(abc.ABC):
    """OS-level operations SerialTransport builds on.

    Handles are opaque to the transport; a driver gets back only handles
    it returned from acquire(). Failures of acquire/configure/set_timeouts
    raise the matching SerialOpenException subclass; I/O calls report
    outcomes in their results instead of raising.
    """

    @abc.abstractmethod
    def acquire(self, path: str) -> object: ...

    @abc.abstractmethod
    def configure(
        self,
        handle: object,
        baud: int,
        data_bits: int,
        stop_bits: _config.StopBits,
        parity: _config.Parity,
    ) -> None: ...

    @abc.abstractmethod
    def set_timeouts(
        self, handle: object, read_timeout_ms: int, write_timeout_ms: int
    ) -> None: ...

    @abc.abstractmethod
    def purge(self, handle: object) -> None: ...

    @abc.abstractmethod
    def read(self, handle: object, size: int) -> ReadResult: ...

    @abc.abstractmethod
    def write(self, handle: object, data: bytes) -> WriteResult: ...

    @abc.abstractmethod
    def set_break(self, handle: object) -> bool: ...

    @abc.abstractmethod
    def clear_break(self, handle: object) -> bool: ...

    @abc.abstractmethod
    def release(self, handle: object) -> None: ...

    @abc.abstractmethod
    def access_lost(self) -> bool: ...


_STOP_BITS = {
    _config.StopBits.ONE: serial.STOPBITS_ONE,
    _config.StopBits.ONE_POINT_FIVE: serial.STOPBITS_ONE_POINT_FIVE,
    _config.StopBits.TWO: serial.STOPBITS_TWO,
}

_PARITY = {
    _config.Parity.NONE: serial.PARITY_NONE,
    _config.Parity.ODD: serial.PARITY_ODD,
    _config.Parity.EVEN: serial.PARITY_EVEN,
    _config.Parity.MARK: serial.PARITY_MARK,
    _config.Parity.SPACE: serial.PARITY_SPACE,
}


class _PySerialHandle:
    def __init__(self, pyserial: serial.Serial, cleanup: contextlib.ExitStack):
        self.pyserial = pyserial
        self.cleanup = cleanup

    def __repr__(self) -> str:
        return f"_PySerialHandle({self.pyserial.port!r})"


class PySerialDriver(SerialDriver):
    """SerialDriver on top of pyserial"""

    def __init__(self, sharing: _locking.SharingType = "exclusive"):
        self.sharing = sharing
        self._last_error: OSError | None = None

    def __repr__(self) -> str:
        return f"PySerialDriver(sharing={self.sharing!r})"

    def acquire(self, path: str) -> object:
        with contextlib.ExitStack() as cleanup:
            pyserial = serial.Serial()
            pyserial.port = path
            log.debug("Opening %s", path)
            try:
                pyserial.open()
            except OSError as ex:
                self._note_error(ex)
                if ex.errno == errno.EBUSY:
                    message = "Serial port busy (EBUSY)"
                    raise _exceptions.SerialOpenBusy(message, path) from ex
                else:
                    message = "Serial port open error"
                    raise _exceptions.SerialOpenException(message, path) from ex
            cleanup.callback(pyserial.close)

            if hasattr(pyserial, "fileno"):
                fd, sharing = pyserial.fileno(), self.sharing
                cleanup.enter_context(_locking.using_fd_lock(path, fd, sharing))

            self._last_error = None
            return _PySerialHandle(pyserial, cleanup.pop_all())

    def configure(
        self,
        handle: object,
        baud: int,
        data_bits: int,
        stop_bits: _config.StopBits,
        parity: _config.Parity,
    ) -> None:
        pyserial = self._pyserial(handle)
        try:
            pyserial.bytesize = data_bits
            pyserial.parity = _PARITY[parity]
            pyserial.stopbits = _STOP_BITS[stop_bits]
            pyserial.baudrate = baud
        except (ValueError, OSError) as ex:
            if isinstance(ex, OSError):
                self._note_error(ex)
            message, port = f"Line settings rejected ({ex})", pyserial.port
            raise _exceptions.SerialConfigureRejected(message, port) from ex

    def set_timeouts(
        self, handle: object, read_timeout_ms: int, write_timeout_ms: int
    ) -> None:
        # 0 means no timeout (block until done), not a non-blocking poll
        pyserial = self._pyserial(handle)
        try:
            pyserial.timeout = read_timeout_ms / 1000 or None
            pyserial.write_timeout = write_timeout_ms / 1000 or None
        except (ValueError, OSError) as ex:
            if isinstance(ex, OSError):
                self._note_error(ex)
            message, port = f"Timeouts rejected ({ex})", pyserial.port
            error = _exceptions.SerialTimeoutConfigureFailed(message, port)
            raise error from ex

    def purge(self, handle: object) -> None:
        # No cancel_read(): with no read in flight it would abort the next one
        pyserial = self._pyserial(handle)
        try:
            pyserial.reset_input_buffer()
        except OSError as ex:
            self._note_error(ex)
            log.warning("Can't purge %s", pyserial.port, exc_info=True)

    def read(self, handle: object, size: int) -> ReadResult:
        pyserial = self._pyserial(handle)
        try:
            data = pyserial.read(size)
        except OSError as ex:
            self._note_error(ex)
            log.debug("Read error on %s: %s", pyserial.port, ex)
            return ReadResult(data=b"", timed_out=False, succeeded=False)
        timed_out = len(data) < size
        return ReadResult(data=data, timed_out=timed_out, succeeded=True)

    def write(self, handle: object, data: bytes) -> WriteResult:
        pyserial = self._pyserial(handle)
        try:
            sent = pyserial.write(data)
        except serial.SerialTimeoutException:
            return WriteResult(sent=0, timed_out=True, succeeded=False)
        except OSError as ex:
            self._note_error(ex)
            log.debug("Write error on %s: %s", pyserial.port, ex)
            return WriteResult(sent=0, timed_out=False, succeeded=False)
        sent = len(data) if sent is None else sent
        timed_out = sent < len(data)
        return WriteResult(sent=sent, timed_out=timed_out, succeeded=True)

    def set_break(self, handle: object) -> bool:
        return self._set_break_condition(handle, True)

    def clear_break(self, handle: object) -> bool:
        return self._set_break_condition(handle, False)

    def release(self, handle: object) -> None:
        assert isinstance(handle, _PySerialHandle)
        log.debug("Closing %s", handle.pyserial.port)
        handle.cleanup.close()

    def access_lost(self) -> bool:
        ex = self._last_error
        if ex is None:
            return False
        # pyserial re-raises OS errors without errno ("read failed: ...")
        cause: BaseException | None = ex
        while isinstance(cause, OSError):
            if cause.errno is not None:
                return cause.errno in ACCESS_LOST_ERRNOS
            cause = cause.__cause__ or cause.__context__
        # "device reports readiness to read but returned no data"
        return "disconnected" in str(ex)

    def _set_break_condition(self, handle: object, on: bool) -> bool:
        pyserial = self._pyserial(handle)
        try:
            pyserial.break_condition = on
        except OSError as ex:
            self._note_error(ex)
            log.debug("Break %s failed on %s: %s", on, pyserial.port, ex)
            return False
        return True

    def _note_error(self, ex: OSError) -> None:
        self._last_error = ex

    @staticmethod
    def _pyserial(handle: object) -> serial.Serial:
        assert isinstance(handle, _PySerialHandle)
        return handle.pyserial
