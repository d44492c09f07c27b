import contextlib
import io
import ok_logging_setup
import os
import pty
import pytest
import typing

import ok_linecheck
from ok_linecheck import _exceptions

ok_logging_setup.install(
    {
        "OK_LOGGING_LEVEL": "ok_linecheck=DEBUG,WARNING",
        "OK_LOGGING_OUTPUT": "stdout",
    }
)


class PseudoTtySerial(typing.NamedTuple):
    path: str
    control: io.FileIO
    simulated: io.FileIO


@pytest.fixture
def pty_serial():
    with contextlib.ExitStack() as cleanup:
        ctrl_fd, sim_fd = pty.openpty()
        path = os.ttyname(sim_fd)
        ctrl = cleanup.enter_context(os.fdopen(ctrl_fd, "r+b", buffering=0))
        sim = cleanup.enter_context(os.fdopen(sim_fd, "r+b", buffering=0))
        yield PseudoTtySerial(path=path, control=ctrl, simulated=sim)


class FakeDriver(ok_linecheck.SerialDriver):
    """Scriptable in-memory driver that records what the transport asks of it"""

    def __init__(self):
        self.calls: list[str] = []
        self.live: set[int] = set()
        self.acquired = 0
        self.configured: tuple | None = None
        self.timeouts: tuple[int, int] | None = None
        self.incoming = bytearray()
        self.outgoing = bytearray()
        self.read_results: list[ok_linecheck.ReadResult] = []
        self.write_results: list[ok_linecheck.WriteResult] = []
        self.fail_acquire = False
        self.fail_configure = False
        self.fail_timeouts = False
        self.break_ok = True
        self.lost = False
        self.on_acquire: typing.Callable[[], None] | None = None

    def acquire(self, path):
        self.calls.append("acquire")
        if self.on_acquire:
            self.on_acquire()
        if self.fail_acquire:
            raise _exceptions.SerialOpenException("No such port", path)
        self.acquired += 1
        self.live.add(self.acquired)
        return self.acquired

    def configure(self, handle, baud, data_bits, stop_bits, parity):
        self.calls.append("configure")
        if self.fail_configure:
            raise _exceptions.SerialConfigureRejected("Bad settings", "fake")
        self.configured = (baud, data_bits, stop_bits, parity)

    def set_timeouts(self, handle, read_timeout_ms, write_timeout_ms):
        self.calls.append("set_timeouts")
        if self.fail_timeouts:
            message = "Bad timeouts"
            raise _exceptions.SerialTimeoutConfigureFailed(message, "fake")
        self.timeouts = (read_timeout_ms, write_timeout_ms)

    def purge(self, handle):
        self.calls.append("purge")
        self.incoming.clear()

    def read(self, handle, size):
        assert handle in self.live
        if self.read_results:
            return self.read_results.pop(0)
        data = bytes(self.incoming[:size])
        del self.incoming[:size]
        return ok_linecheck.ReadResult(
            data=data, timed_out=len(data) < size, succeeded=True
        )

    def write(self, handle, data):
        assert handle in self.live
        if self.write_results:
            return self.write_results.pop(0)
        self.outgoing.extend(data)
        return ok_linecheck.WriteResult(
            sent=len(data), timed_out=False, succeeded=True
        )

    def set_break(self, handle):
        self.calls.append("set_break")
        return self.break_ok

    def clear_break(self, handle):
        self.calls.append("clear_break")
        return self.break_ok

    def release(self, handle):
        self.calls.append("release")
        self.live.remove(handle)

    def access_lost(self):
        return self.lost


@pytest.fixture
def fake_driver():
    return FakeDriver()


@pytest.fixture
def transport(fake_driver):
    config = ok_linecheck.PortConfiguration(path="/dev/fake0")
    return ok_linecheck.SerialTransport(config, fake_driver)
