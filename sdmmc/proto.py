"""Constants and checksums from the SD card SPI protocol."""

from __future__ import annotations

from collections.abc import Iterable

# Card status: last operation succeeded
ERROR_OK = 0x00

# Commands
CMD0 = 0x00  # GO_IDLE_STATE
CMD8 = 0x08  # SEND_IF_COND
CMD9 = 0x09  # SEND_CSD
CMD12 = 0x0C  # STOP_TRANSMISSION
CMD13 = 0x0D  # SEND_STATUS
CMD17 = 0x11  # READ_SINGLE_BLOCK
CMD18 = 0x12  # READ_MULTIPLE_BLOCK
CMD24 = 0x18  # WRITE_BLOCK
CMD25 = 0x19  # WRITE_MULTIPLE_BLOCK
CMD55 = 0x37  # APP_CMD
CMD58 = 0x3A  # READ_OCR
CMD59 = 0x3B  # CRC_ON_OFF
ACMD23 = 0x17  # SET_WR_BLK_ERASE_COUNT
ACMD41 = 0x29  # SD_SEND_OP_COND

# R1 response bits
R1_READY_STATE = 0x00
R1_IDLE_STATE = 0x01
R1_ILLEGAL_COMMAND = 0x04

# Data tokens
DATA_START_BLOCK = 0xFE
STOP_TRAN_TOKEN = 0xFD
WRITE_MULTIPLE_TOKEN = 0xFC
DATA_RES_MASK = 0x1F
DATA_RES_ACCEPTED = 0x05


def crc7(data: Iterable[int]) -> int:
    """Return the 7-bit command CRC, shifted left with the end bit set."""
    crc = 0
    for byte in data:
        d = byte & 0xFF
        for _ in range(8):
            crc = (crc << 1) & 0xFF
            if (d & 0x80) ^ (crc & 0x80):
                crc ^= 0x09
            d = (d << 1) & 0xFF
    return ((crc << 1) | 1) & 0xFF


def crc16(data: Iterable[int]) -> int:
    """Return the 16-bit CCITT CRC used on data blocks."""
    crc = 0
    for byte in data:
        crc = ((crc >> 8) & 0xFF) | ((crc << 8) & 0xFFFF)
        crc ^= byte & 0xFF
        crc ^= (crc & 0xFF) >> 4
        crc ^= (crc << 12) & 0xFFFF
        crc ^= ((crc & 0xFF) << 5) & 0xFFFF
    return crc