import dataclasses
import logging
import threading
import typing

import msgspec

from ok_linecheck import _exceptions

log = logging.getLogger("ok_linecheck.monitor")
data_log = logging.getLogger(log.name + ".data")

FILLER = ord(" ")
MARKERS = frozenset(b"KS")
HEX_DIGITS = frozenset(b"0123456789abcdefABCDEF")


class Heartbeat(msgspec.Struct, frozen=True, tag=True):
    """The counter advanced by exactly one"""


class Wrap(msgspec.Struct, frozen=True, tag=True):
    """The counter rolled over from 0xFF to 0x00"""


class Anomaly(msgspec.Struct, frozen=True, tag=True):
    """The counter jumped to 'value' after earlier good samples"""

    value: int


class Marker(msgspec.Struct, frozen=True, tag=True):
    """Out-of-band record: a marker character and the two bytes after it"""

    first: int
    second: int


class InvalidPair(msgspec.Struct, frozen=True, tag=True):
    """Two bytes in counter position that were not both hex digits"""

    high: int
    low: int


Event = Heartbeat | Wrap | Anomaly | Marker | InvalidPair


@typing.runtime_checkable
class ByteSource(typing.Protocol):
    def read(self, size: int) -> bytes: ...


@dataclasses.dataclass
class SequenceState:
    previous_value: int = 0
    sample_seen: bool = False


def decode_pair(high: int, low: int) -> int | None:
    """Value of two ASCII hex digits, or None if either isn't one"""

    if high in HEX_DIGITS and low in HEX_DIGITS:
        return int(bytes((high, low)), 16)
    return None


class ContinuityMonitor:
    """Checks a stream of two-digit hex counter samples for continuity.

    Iterating reads from 'source' until stop(), a read error, or a short
    read (end of input), and yields an Event for every heartbeat, wrap,
    anomaly, marker or undecodable pair. The iterator is the monitor
    itself, so it cannot be restarted; decode state carries over.
    """

    def __init__(self, source: ByteSource):
        self.state = SequenceState()
        self._source = source
        self._stop = threading.Event()

    def __repr__(self) -> str:
        return f"ContinuityMonitor({self._source!r}, {self.state})"

    def __iter__(self) -> "ContinuityMonitor":
        return self

    def __next__(self) -> Event:
        while not self._stop.is_set():
            if (event := self._step()) is not None:
                data_log.debug("%s", event)
                return event
        log.debug("Stopped")
        raise StopIteration

    def events(self) -> "ContinuityMonitor":
        return self

    def stop(self) -> None:
        """Ends iteration once the current read returns.

        Safe to call from another thread or a signal handler. A partly
        read sample is dropped.
        """

        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def fold_sample(self, value: int) -> Event | None:
        """Updates state with one decoded counter sample"""

        state = self.state
        if state.previous_value - value == 0xFF:
            event: Event | None = Wrap()
        elif value - state.previous_value == 1:
            event = Heartbeat()
            state.sample_seen = True
        elif state.sample_seen:
            event = Anomaly(value)
        else:
            prev = state.previous_value
            log.debug("First sample %02X (prev=%02X)", value, prev)
            event = None
        state.previous_value = value
        return event

    def _step(self) -> Event | None:
        if not (head := self._read(1)) or head[0] == FILLER:
            return None

        if head[0] in MARKERS:
            if not (tail := self._read(2)):
                return None
            return Marker(tail[0], tail[1])

        if not (low := self._read(1)):
            return None
        value = decode_pair(head[0], low[0])
        if value is None:
            log.debug("Bad hex pair %r", head + low)
            return InvalidPair(head[0], low[0])
        return self.fold_sample(value)

    def _read(self, size: int) -> bytes:
        """Reads 'size' bytes, or returns b"" if stopped or at end of input"""

        if self._stop.is_set():
            return b""
        try:
            data = self._source.read(size)
        except _exceptions.SerialIoException:
            if self._stop.is_set():
                log.debug("Read interrupted by stop, discarding")
                return b""
            raise
        if len(data) < size:
            log.debug("End of input (%d/%db)", len(data), size)
            self._stop.set()
            return b""
        return data
