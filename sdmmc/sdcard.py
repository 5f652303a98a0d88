"""SD and SDHC card access over an SPI bus, exposed as a block device."""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Callable, Iterator, Sequence
from typing import Protocol, TypeVar

from .csd import CSD_LEN, CsdV1, CsdV2
from .proto import (
    ACMD23,
    ACMD41,
    CMD0,
    CMD8,
    CMD9,
    CMD12,
    CMD13,
    CMD17,
    CMD18,
    CMD24,
    CMD25,
    CMD55,
    CMD58,
    CMD59,
    DATA_RES_ACCEPTED,
    DATA_RES_MASK,
    DATA_START_BLOCK,
    ERROR_OK,
    R1_IDLE_STATE,
    R1_ILLEGAL_COMMAND,
    R1_READY_STATE,
    STOP_TRAN_TOKEN,
    WRITE_MULTIPLE_TOKEN,
    crc7,
    crc16,
)
from .sdtypes import (
    AcquireOpts,
    CardType,
    Delay,
    DelayUs,
    SdCardError,
    SdCardErrorKind,
)

BLOCK_LEN = 512
_U32_MAX = 0xFFFF_FFFF
_FLUSH_BYTES = 0xFF
_CHECK_PATTERN = 0xAA
_HIGH_CAPACITY_ARG = 0x4000_0000
_CCS_MASK = 0xC0

_log = logging.getLogger(__name__)

T = TypeVar("T")


class SpiBus(Protocol):
    """A full-duplex SPI bus."""

    def transfer(self, data: bytes) -> bytes:
        """Clock out ``data`` and return the bytes clocked in."""
        ...

    def write(self, data: bytes) -> None:
        """Clock out ``data``, discarding what comes back."""
        ...


class OutputPin(Protocol):
    """A digital output, used as the card's chip select."""

    def set_high(self) -> None: ...

    def set_low(self) -> None: ...


class SdCard:
    """An SD card on an SPI bus.

    The chip select pin is driven separately from the bus so that bytes can
    be clocked out with the card deselected. The card is initialised lazily,
    the first time an operation needs it.
    """

    def __init__(
        self,
        spi: SpiBus,
        cs: OutputPin,
        delayer: DelayUs,
        options: AcquireOpts | None = None,
    ) -> None:
        self._spi = spi
        self._cs = cs
        self._delayer = delayer
        self._options = options if options is not None else AcquireOpts()
        self._card_type: CardType | None = None

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def spi(self, func: Callable[[SpiBus], T]) -> T:
        """Call ``func`` once with the underlying SPI bus and return its result."""
        return func(self._spi)

    def num_bytes(self) -> int:
        """Return the usable size of the card in bytes, initialising it if needed."""
        self._check_init()
        with self._chip_selected():
            return self._read_csd().card_capacity_bytes()

    def erase_single_block_enabled(self) -> bool:
        """Return whether the card can erase single blocks."""
        self._check_init()
        with self._chip_selected():
            return self._read_csd().erase_single_block_enabled

    def mark_card_uninit(self) -> None:
        """Forget the card's state, so the next operation initialises it afresh."""
        self._card_type = None

    def get_card_type(self) -> CardType | None:
        """Return the card type, or ``None`` if the card cannot be initialised."""
        try:
            self._check_init()
        except SdCardError:
            return None
        return self._card_type

    def mark_card_as_init(self, card_type: CardType) -> None:
        """Declare the card already initialised as ``card_type``.

        Only do this when the card really has been through initialisation
        and is of that type; otherwise data will be corrupted.
        """
        if not isinstance(card_type, CardType):
            raise TypeError("card_type must be a CardType")
        self._card_type = card_type

    def read(
        self, start_block_idx: int, count: int = 1, reason: str = ""
    ) -> list[bytes]:
        """Read ``count`` blocks starting at ``start_block_idx``."""
        if count < 0:
            raise ValueError("count must not be negative")
        _log.debug("Read %d blocks @ %d for %s", count, start_block_idx, reason)
        self._check_init()
        address = self._start_address(start_block_idx)
        with self._chip_selected():
            if count == 1:
                self._card_command(CMD17, address)
                return [self._read_data(BLOCK_LEN)]
            self._card_command(CMD18, address)
            blocks = [self._read_data(BLOCK_LEN) for _ in range(count)]
            self._card_command(CMD12, 0)
            return blocks

    def write(self, blocks: Sequence[bytes], start_block_idx: int) -> None:
        """Write ``blocks`` (each 512 bytes) starting at ``start_block_idx``."""
        payload = [bytes(block) for block in blocks]
        for block in payload:
            if len(block) != BLOCK_LEN:
                raise ValueError(
                    f"blocks must be {BLOCK_LEN} bytes long, got {len(block)}"
                )
        _log.debug("Writing %d blocks @ %d", len(payload), start_block_idx)
        self._check_init()
        address = self._start_address(start_block_idx)
        with self._chip_selected():
            if len(payload) == 1:
                self._card_command(CMD24, address)
                self._write_data(DATA_START_BLOCK, payload[0])
                self._wait_not_busy(Delay.new_write())
                if self._card_command(CMD13, 0) != 0x00:
                    raise SdCardError(SdCardErrorKind.WRITE_ERROR)
                if self._read_byte() != 0x00:
                    raise SdCardError(SdCardErrorKind.WRITE_ERROR)
                return
            # Pre-erase hint: some cards write multiple blocks faster with it.
            self._card_acmd(ACMD23, len(payload))
            self._wait_not_busy(Delay.new_write())
            self._card_command(CMD25, address)
            for block in payload:
                self._wait_not_busy(Delay.new_write())
                self._write_data(WRITE_MULTIPLE_TOKEN, block)
            self._wait_not_busy(Delay.new_write())
            self._write_byte(STOP_TRAN_TOKEN)

    def num_blocks(self) -> int:
        """Return how many 512-byte blocks the card holds."""
        self._check_init()
        with self._chip_selected():
            return self._read_csd().card_capacity_blocks()

    def __repr__(self) -> str:
        kind = self._card_type.name if self._card_type else "uninitialised"
        return f"SdCard({kind}, {self._options!r})"

    # ------------------------------------------------------------------
    # Card state
    # ------------------------------------------------------------------

    def _start_address(self, block_idx: int) -> int:
        if not 0 <= block_idx <= _U32_MAX:
            raise ValueError(f"block index {block_idx} is out of range")
        if self._card_type in (CardType.SD1, CardType.SD2):
            address = block_idx * BLOCK_LEN
        elif self._card_type is CardType.SDHC:
            address = block_idx
        else:
            raise SdCardError(SdCardErrorKind.CARD_NOT_FOUND)
        if address > _U32_MAX:
            raise ValueError(f"block index {block_idx} is beyond byte addressing")
        return address

    def _read_csd(self) -> CsdV1 | CsdV2:
        if self._card_type is CardType.SD1:
            csd_class: type[CsdV1] | type[CsdV2] = CsdV1
        elif self._card_type in (CardType.SD2, CardType.SDHC):
            csd_class = CsdV2
        else:
            raise SdCardError(SdCardErrorKind.CARD_NOT_FOUND)
        if self._card_command(CMD9, 0) != 0:
            raise SdCardError(SdCardErrorKind.REGISTER_READ_ERROR)
        csd = csd_class(self._read_data(CSD_LEN))
        _log.debug("CSD: %r", csd)
        return csd

    def _check_init(self) -> None:
        if self._card_type is None:
            self._acquire()

    def _acquire(self) -> None:
        _log.debug("Acquiring card with options %r", self._options)
        try:
            self._acquire_card()
        finally:
            self._cs_high()
            with contextlib.suppress(SdCardError):
                self._read_byte()

    def _acquire_card(self) -> None:
        # At least 74 clock cycles with the card deselected.
        self._cs_high()
        self._write_bytes(b"\xff" * 10)
        self._cs_low()

        delay = Delay(self._options.acquire_retries)
        attempt = 0
        while True:
            attempt += 1
            _log.debug("Enter SPI mode, attempt %d", attempt)
            try:
                response = self._card_command(CMD0, 0)
            except SdCardError as err:
                if err.kind is not SdCardErrorKind.TIMEOUT_COMMAND or err.detail != CMD0:
                    raise
                _log.warning("Timed out, flushing card and trying again")
                for _ in range(_FLUSH_BYTES):
                    self._write_byte(0xFF)
            else:
                if response == R1_IDLE_STATE:
                    break
                _log.warning("Got response 0x%02x, trying again", response)
            delay.delay(self._delayer, SdCardError(SdCardErrorKind.CARD_NOT_FOUND))

        # Cards start in CRC-off mode.
        if self._options.use_crc and self._card_command(CMD59, 1) != R1_IDLE_STATE:
            raise SdCardError(SdCardErrorKind.CANT_ENABLE_CRC)

        delay = Delay.new_command()
        while True:
            if self._card_command(CMD8, 0x1AA) == (R1_ILLEGAL_COMMAND | R1_IDLE_STATE):
                card_type = CardType.SD1
                arg = 0
                break
            status = self._transfer_bytes(b"\xff" * 4)[3]
            if status == _CHECK_PATTERN:
                card_type = CardType.SD2
                arg = _HIGH_CAPACITY_ARG
                break
            delay.delay(
                self._delayer, SdCardError(SdCardErrorKind.TIMEOUT_COMMAND, CMD8)
            )

        delay = Delay.new_command()
        while self._card_acmd(ACMD41, arg) != R1_READY_STATE:
            delay.delay(
                self._delayer, SdCardError(SdCardErrorKind.TIMEOUT_ACOMMAND, ACMD41)
            )

        if card_type is CardType.SD2:
            if self._card_command(CMD58, 0) != 0:
                raise SdCardError(SdCardErrorKind.CMD58_ERROR)
            ocr = self._transfer_bytes(b"\xff" * 4)
            if ocr[0] & _CCS_MASK == _CCS_MASK:
                card_type = CardType.SDHC
        _log.debug("Card version: %s", card_type.name)
        self._card_type = card_type

    # ------------------------------------------------------------------
    # Protocol
    # ------------------------------------------------------------------

    def _read_data(self, length: int) -> bytes:
        delay = Delay.new_read()
        while True:
            status = self._read_byte()
            if status != 0xFF:
                break
            delay.delay(self._delayer, SdCardError(SdCardErrorKind.TIMEOUT_READ_BUFFER))
        if status != DATA_START_BLOCK:
            raise SdCardError(SdCardErrorKind.READ_ERROR)

        data = self._transfer_bytes(b"\xff" * length)
        # Two CRC bytes always follow; they are junk unless CRC mode is on.
        crc_bytes = self._transfer_bytes(b"\xff\xff")
        if self._options.use_crc:
            crc = int.from_bytes(crc_bytes, "big")
            calculated = crc16(data)
            if crc != calculated:
                raise SdCardError(SdCardErrorKind.CRC_ERROR, (crc, calculated))
        return data

    def _write_data(self, token: int, data: bytes) -> None:
        self._write_byte(token)
        self._write_bytes(data)
        if self._options.use_crc:
            crc_bytes = crc16(data).to_bytes(2, "big")
        else:
            crc_bytes = b"\xff\xff"
        self._write_bytes(crc_bytes)
        status = self._read_byte()
        if status & DATA_RES_MASK != DATA_RES_ACCEPTED:
            raise SdCardError(SdCardErrorKind.WRITE_ERROR)

    def _card_acmd(self, command: int, arg: int) -> int:
        self._card_command(CMD55, 0)
        return self._card_command(command, arg)

    def _card_command(self, command: int, arg: int) -> int:
        if command not in (CMD0, CMD12):
            self._wait_not_busy(Delay.new_command())

        frame = bytearray([0x40 | command]) + (arg & _U32_MAX).to_bytes(4, "big")
        frame.append(crc7(frame))
        self._write_bytes(bytes(frame))

        if command == CMD12:
            # Skip the stuff byte that follows a stop command.
            self._read_byte()

        delay = Delay.new_command()
        while True:
            result = self._read_byte()
            if result & 0x80 == ERROR_OK:
                return result
            delay.delay(
                self._delayer, SdCardError(SdCardErrorKind.TIMEOUT_COMMAND, command)
            )

    def _wait_not_busy(self, delay: Delay) -> None:
        while self._read_byte() != 0xFF:
            delay.delay(
                self._delayer, SdCardError(SdCardErrorKind.TIMEOUT_WAIT_NOT_BUSY)
            )

    # ------------------------------------------------------------------
    # Bus and pin access
    # ------------------------------------------------------------------

    @contextlib.contextmanager
    def _chip_selected(self) -> Iterator[None]:
        """Hold chip select low, releasing it even if the body fails."""
        self._cs_low()
        try:
            yield
        finally:
            self._cs_high()

    def _cs_high(self) -> None:
        try:
            self._cs.set_high()
        except Exception as exc:
            raise SdCardError(SdCardErrorKind.GPIO_ERROR) from exc

    def _cs_low(self) -> None:
        try:
            self._cs.set_low()
        except Exception as exc:
            raise SdCardError(SdCardErrorKind.GPIO_ERROR) from exc

    def _read_byte(self) -> int:
        return self._transfer_bytes(b"\xff")[0]

    def _write_byte(self, out: int) -> None:
        self._transfer_bytes(bytes([out]))

    def _write_bytes(self, data: bytes) -> None:
        try:
            self._spi.write(data)
        except Exception as exc:
            raise SdCardError(SdCardErrorKind.TRANSPORT) from exc

    def _transfer_bytes(self, data: bytes) -> bytes:
        try:
            reply = bytes(self._spi.transfer(data))
        except Exception as exc:
            raise SdCardError(SdCardErrorKind.TRANSPORT) from exc
        if len(reply) != len(data):
            raise SdCardError(SdCardErrorKind.TRANSPORT)
        return reply