import enum
import logging
import weakref

import pydantic
import pydantic_settings

from ok_linecheck import _exceptions
from ok_linecheck import _locking

log = logging.getLogger("ok_linecheck.config")

DEFAULT_PATH = "/dev/ttyUSB0"


class StopBits(enum.Enum):
    ONE = "1"
    ONE_POINT_FIVE = "1.5"
    TWO = "2"


class Parity(enum.Enum):
    NONE = "none"
    ODD = "odd"
    EVEN = "even"
    MARK = "mark"
    SPACE = "space"


class PortConfiguration(pydantic.BaseModel):
    """Line parameters for a serial port, frozen while the port is open.

    Values are not range checked here; the driver rejects bad ones when
    the owning transport opens.
    """

    model_config = pydantic.ConfigDict(validate_assignment=True)

    path: str = DEFAULT_PATH
    baud: int = 115200
    data_bits: int = 8
    stop_bits: StopBits = StopBits.TWO
    parity: Parity = Parity.MARK
    timeout_ms: int = 1100

    _owner: weakref.ref | None = pydantic.PrivateAttr(default=None)

    def __setattr__(self, name: str, value) -> None:
        if name in type(self).model_fields:
            self._check_closed(name)
        super().__setattr__(name, value)

    def set_path(self, path: str) -> None:
        self.path = path

    def set_baud(self, baud: int) -> None:
        self.baud = baud

    def set_data_bits(self, data_bits: int) -> None:
        self.data_bits = data_bits

    def set_stop_bits(self, stop_bits: StopBits) -> None:
        self.stop_bits = stop_bits

    def set_parity(self, parity: Parity) -> None:
        self.parity = parity

    def set_timeout(self, timeout_ms: int) -> None:
        self.timeout_ms = timeout_ms

    def owner(self):
        """The transport this configuration belongs to, if any"""

        return self._owner() if self._owner else None

    def _bind_owner(self, transport) -> None:
        current = self.owner()
        if current is not None and current is not transport:
            raise ValueError(f"{self.path}: configuration already in use")
        self._owner = weakref.ref(transport)

    def _check_closed(self, name: str) -> None:
        owner = self.owner()
        if owner is not None and owner.query_state():
            log.debug("Refusing to set %s on open %s", name, self.path)
            message = f"Can't set {name}: port is open"
            raise _exceptions.SerialAlreadyOpen(message, self.path)


class LinecheckSettings(pydantic_settings.BaseSettings):
    """Port defaults, overridable with OK_LINECHECK_* environment variables
    (e.g. OK_LINECHECK_PORT=/dev/ttyACM0, OK_LINECHECK_PARITY=none).
    """

    model_config = pydantic_settings.SettingsConfigDict(
        env_prefix="OK_LINECHECK_"
    )

    port: str = DEFAULT_PATH
    baud: int = 115200
    data_bits: int = 8
    stop_bits: StopBits = StopBits.TWO
    parity: Parity = Parity.MARK
    timeout_ms: int = 1100
    sharing: _locking.SharingType = "exclusive"

    def to_configuration(self) -> PortConfiguration:
        return PortConfiguration(
            path=self.port,
            baud=self.baud,
            data_bits=self.data_bits,
            stop_bits=self.stop_bits,
            parity=self.parity,
            timeout_ms=self.timeout_ms,
        )
