"""Types shared by the SD card driver: options, card kinds, errors and retry timing."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Protocol

_U8_MAX = 0xFF
_U16_MAX = 0xFFFF


class DelayUs(Protocol):
    """Anything that can busy-wait for a number of microseconds."""

    def delay_us(self, us: int) -> None: ...


@dataclass
class AcquireOpts:
    """Options for acquiring the card.

    ``use_crc`` turns on CRC checking of data blocks; it is on by default
    because without it data can be silently corrupted. ``acquire_retries``
    is how many times card acquisition is retried before giving up.
    """

    use_crc: bool = True
    acquire_retries: int = 50

    def __post_init__(self) -> None:
        if self.acquire_retries < 0:
            raise ValueError("acquire_retries must not be negative")


class CardType(enum.Enum):
    """The kinds of card the driver supports."""

    SD1 = "SD1"
    """Standard-capacity card, v1.x of the standard; byte-addressed."""
    SD2 = "SD2"
    """Standard-capacity card, v2.x of the standard; byte-addressed."""
    SDHC = "SDHC"
    """High-capacity card; block-addressed."""


class SdCardErrorKind(enum.Enum):
    """Every way the SD card driver can fail."""

    TRANSPORT = "We got an error from the SPI peripheral"
    CANT_ENABLE_CRC = "We failed to enable CRC checking on the SD card"
    TIMEOUT_READ_BUFFER = "We didn't get a response when reading data from the card"
    TIMEOUT_WAIT_NOT_BUSY = (
        "We didn't get a response when waiting for the card to not be busy"
    )
    TIMEOUT_COMMAND = "We didn't get a response when executing this command"
    TIMEOUT_ACOMMAND = (
        "We didn't get a response when executing this application-specific command"
    )
    CMD58_ERROR = "We got a bad response from Command 58"
    REGISTER_READ_ERROR = "We failed to read the Card Specific Data register"
    CRC_ERROR = "We got a CRC mismatch"
    READ_ERROR = "Error reading from the card"
    WRITE_ERROR = "Error writing to the card"
    BAD_STATE = "Can't perform this operation with the card in this state"
    CARD_NOT_FOUND = "Couldn't find the card"
    GPIO_ERROR = "Couldn't set a GPIO pin"


_COMMAND_KINDS = frozenset(
    {SdCardErrorKind.TIMEOUT_COMMAND, SdCardErrorKind.TIMEOUT_ACOMMAND}
)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class SdCardError(Exception):
    """An SD card driver error.

    Command timeouts carry the command number; CRC errors carry the pair
    ``(crc_from_card, crc_calculated)``. No other kind carries a value.
    """

    def __init__(self, kind: SdCardErrorKind, detail: Any = None) -> None:
        if not isinstance(kind, SdCardErrorKind):
            raise TypeError(
                f"kind must be an SdCardErrorKind, not {type(kind).__name__}"
            )
        if kind in _COMMAND_KINDS:
            if not _is_int(detail) or not 0 <= detail <= _U8_MAX:
                raise TypeError(f"{kind.name} needs a command number from 0 to 255")
        elif kind is SdCardErrorKind.CRC_ERROR:
            if (
                not isinstance(detail, tuple)
                or len(detail) != 2
                or not all(_is_int(v) and 0 <= v <= _U16_MAX for v in detail)
            ):
                raise TypeError("CRC_ERROR needs a pair of 16-bit CRC values")
        elif detail is not None:
            raise TypeError(f"{kind.name} takes no detail value")
        super().__init__(kind, detail)
        self.kind = kind
        self.detail = detail

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SdCardError):
            return NotImplemented
        return self.kind is other.kind and self.detail == other.detail

    def __hash__(self) -> int:
        return hash((self.kind, self.detail))

    def __str__(self) -> str:
        if self.kind is SdCardErrorKind.CRC_ERROR:
            card, calc = self.detail
            return f"{self.kind.value}: card 0x{card:04x}, calculated 0x{calc:04x}"
        if self.detail is None:
            return self.kind.value
        return f"{self.kind.value}: 0x{self.detail:02x}"

    def __repr__(self) -> str:
        if self.detail is None:
            return f"SdCardError({self.kind.name})"
        return f"SdCardError({self.kind.name}, {self.detail!r})"


class Delay:
    """A busy-wait helper with a retry limit.

    ``delay`` may be called ``max_retries`` times; each call waits 10us.
    After that it raises the error it is given.
    """

    DEFAULT_READ_RETRIES = 10_000
    DEFAULT_WRITE_RETRIES = 50_000
    DEFAULT_COMMAND_RETRIES = 10_000
    STEP_US = 10

    def __init__(self, max_retries: int) -> None:
        if not _is_int(max_retries) or max_retries < 0:
            raise ValueError("max_retries must be a non-negative integer")
        self.retries_left = max_retries

    @classmethod
    def new_read(cls) -> Delay:
        """A delay with the retry limit for reading data."""
        return cls(cls.DEFAULT_READ_RETRIES)

    @classmethod
    def new_write(cls) -> Delay:
        """A delay with the retry limit for writing data."""
        return cls(cls.DEFAULT_WRITE_RETRIES)

    @classmethod
    def new_command(cls) -> Delay:
        """A delay with the retry limit for control commands."""
        return cls(cls.DEFAULT_COMMAND_RETRIES)

    def delay(self, delayer: DelayUs, error: BaseException) -> None:
        """Wait one step, or raise ``error`` if no retries are left."""
        if self.retries_left == 0:
            raise error
        delayer.delay_us(self.STEP_US)
        self.retries_left -= 1

    def __repr__(self) -> str:
        return f"Delay(retries_left={self.retries_left})"