"""
Serial line transport with strict open/close discipline and typed errors,
plus a continuity checker for hex counter streams.
"""

from beartype.claw import beartype_this_package as _beartype_me

# ruff: noqa: E402
_beartype_me()

from ok_linecheck._config import (
    LinecheckSettings,
    Parity,
    PortConfiguration,
    StopBits,
)

from ok_linecheck._driver import (
    PySerialDriver,
    ReadResult,
    SerialDriver,
    WriteResult,
)

from ok_linecheck._exceptions import (
    ErrorKind,
    SerialAlreadyOpen,
    SerialBreakException,
    SerialCannotResetBreak,
    SerialCannotSetBreak,
    SerialConfigureRejected,
    SerialException,
    SerialIoException,
    SerialNotOpen,
    SerialOpenBusy,
    SerialOpenException,
    SerialPartialRead,
    SerialPartialWrite,
    SerialReadTimeout,
    SerialStateException,
    SerialTimeoutConfigureFailed,
    SerialWriteTimeout,
)

from ok_linecheck._locking import SharingType
from ok_linecheck._monitor import (
    Anomaly,
    ByteSource,
    ContinuityMonitor,
    Event,
    Heartbeat,
    InvalidPair,
    Marker,
    SequenceState,
    Wrap,
)
from ok_linecheck._transport import SerialTransport

__all__ = [n for n in dir() if not n.startswith("_")]
