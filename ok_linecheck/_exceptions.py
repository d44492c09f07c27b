"""Exception hierarchy for ok_linecheck"""

import enum


class ErrorKind(enum.Enum):
    ALREADY_OPEN = "AlreadyOpen"
    NOT_OPEN = "NotOpen"
    CANNOT_OPEN = "CannotOpen"
    TIMEOUT_CONFIGURE_FAILED = "TimeoutConfigureFailed"
    CONFIGURE_REJECTED = "ConfigureRejected"
    READ_TIMEOUT = "ReadTimeout"
    WRITE_TIMEOUT = "WriteTimeout"
    PARTIAL_READ = "PartialRead"
    PARTIAL_WRITE = "PartialWrite"
    CANNOT_SET_BREAK = "CannotSetBreak"
    CANNOT_RESET_BREAK = "CannotResetBreak"


class SerialException(OSError):
    kind: ErrorKind

    def __init__(
        self,
        message: str,
        port: str | None = None,
    ):
        super().__init__(f"{port}: {message}" if port else message)
        self.port = port


class SerialStateException(SerialException):
    pass


class SerialAlreadyOpen(SerialStateException):
    kind = ErrorKind.ALREADY_OPEN


class SerialNotOpen(SerialStateException):
    kind = ErrorKind.NOT_OPEN


class SerialOpenException(SerialException):
    kind = ErrorKind.CANNOT_OPEN


class SerialOpenBusy(SerialOpenException):
    pass


class SerialConfigureRejected(SerialOpenException):
    kind = ErrorKind.CONFIGURE_REJECTED


class SerialTimeoutConfigureFailed(SerialOpenException):
    kind = ErrorKind.TIMEOUT_CONFIGURE_FAILED


class SerialIoException(SerialException):
    pass


class SerialReadTimeout(SerialIoException):
    kind = ErrorKind.READ_TIMEOUT


class SerialPartialRead(SerialIoException):
    kind = ErrorKind.PARTIAL_READ


class SerialWriteTimeout(SerialIoException):
    kind = ErrorKind.WRITE_TIMEOUT


class SerialPartialWrite(SerialIoException):
    kind = ErrorKind.PARTIAL_WRITE


class SerialBreakException(SerialException):
    pass


class SerialCannotSetBreak(SerialBreakException):
    kind = ErrorKind.CANNOT_SET_BREAK


class SerialCannotResetBreak(SerialBreakException):
    kind = ErrorKind.CANNOT_RESET_BREAK
