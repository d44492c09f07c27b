import contextlib
import fcntl
import logging
import termios
import typeguard
from typing import Literal

from ok_linecheck import _exceptions


SharingType = Literal["oblivious", "polite", "exclusive"]

log = logging.getLogger("ok_linecheck.locking")


@contextlib.contextmanager
@typeguard.typechecked
def using_fd_lock(port: str, fd: int, sharing: SharingType):
    """Claims the open device 'fd' per 'sharing' until the context exits"""

    try:
        if sharing == "polite":
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            fcntl.flock(fd, fcntl.LOCK_UN | fcntl.LOCK_NB)
            fcntl.flock(fd, fcntl.LOCK_SH | fcntl.LOCK_NB)
            log.debug("Acquired flock(LOCK_SH) on %s", port)
        elif sharing == "exclusive":
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            log.debug("Acquired flock(LOCK_EX) on %s", port)
    except BlockingIOError as exc:
        message = "Serial port busy (flock claimed)"
        raise _exceptions.SerialOpenBusy(message, port) from exc
    except OSError:
        log.warning("Can't lock (flock) %s", port, exc_info=True)

    excl = False
    if sharing == "exclusive":
        try:
            fcntl.ioctl(fd, termios.TIOCEXCL)
            excl = True
            log.debug("Acquired TIOCEXCL on %s", port)
        except OSError:
            log.warning("Can't lock (TIOCEXCL) %s", port, exc_info=True)

    try:
        yield
    finally:
        if excl:
            try:
                fcntl.ioctl(fd, termios.TIOCNXCL)
                log.debug("Released TIOCEXCL on %s", port)
            except OSError:
                log.warning("Can't release TIOCEXCL on %s", port, exc_info=True)

        if sharing != "oblivious":
            try:
                fcntl.flock(fd, fcntl.LOCK_UN | fcntl.LOCK_NB)
                log.debug("Released flock on %s", port)
            except OSError:
                log.warning("Can't release flock on %s", port, exc_info=True)
