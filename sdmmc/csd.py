"""Card Specific Data (CSD) register decoding for SD cards."""

from __future__ import annotations

from dataclasses import dataclass, field

from .bitfields import bit_field, bit_flag, combined_field

CSD_LEN = 16
_U32_MASK = 0xFFFF_FFFF


@dataclass(frozen=True)
class _CsdCommon:
    """Fields shared by both versions of the CSD register."""

    data: bytes = field(default=bytes(CSD_LEN))

    def __post_init__(self) -> None:
        raw = bytes(self.data)
        if len(raw) != CSD_LEN:
            raise ValueError(f"CSD must be {CSD_LEN} bytes, got {len(raw)}")
        object.__setattr__(self, "data", raw)

    @property
    def csd_ver(self) -> int:
        return bit_field(self.data, 0, 6, 2)

    @property
    def data_read_access_time1(self) -> int:
        return bit_field(self.data, 1, 0, 8)

    @property
    def data_read_access_time2(self) -> int:
        return bit_field(self.data, 2, 0, 8)

    @property
    def max_data_transfer_rate(self) -> int:
        return bit_field(self.data, 3, 0, 8)

    @property
    def card_command_classes(self) -> int:
        return combined_field(self.data, [(4, 0, 8), (5, 4, 4)])

    @property
    def read_block_length(self) -> int:
        return bit_field(self.data, 5, 0, 4)

    @property
    def read_partial_blocks(self) -> bool:
        return bit_flag(self.data, 6, 7)

    @property
    def write_block_misalignment(self) -> bool:
        return bit_flag(self.data, 6, 6)

    @property
    def read_block_misalignment(self) -> bool:
        return bit_flag(self.data, 6, 5)

    @property
    def dsr_implemented(self) -> bool:
        return bit_flag(self.data, 6, 4)

    @property
    def erase_single_block_enabled(self) -> bool:
        return bit_flag(self.data, 10, 6)

    @property
    def erase_sector_size(self) -> int:
        return combined_field(self.data, [(10, 0, 6), (11, 7, 1)])

    @property
    def write_protect_group_size(self) -> int:
        return bit_field(self.data, 11, 0, 7)

    @property
    def write_protect_group_enable(self) -> bool:
        return bit_flag(self.data, 12, 7)

    @property
    def write_speed_factor(self) -> int:
        return bit_field(self.data, 12, 2, 3)

    @property
    def max_write_data_length(self) -> int:
        return combined_field(self.data, [(12, 0, 2), (13, 6, 2)])

    @property
    def write_partial_blocks(self) -> bool:
        return bit_flag(self.data, 13, 5)

    @property
    def file_format(self) -> int:
        return bit_field(self.data, 14, 2, 2)

    @property
    def temporary_write_protection(self) -> bool:
        return bit_flag(self.data, 14, 4)

    @property
    def permanent_write_protection(self) -> bool:
        return bit_flag(self.data, 14, 5)

    @property
    def copy_flag_set(self) -> bool:
        return bit_flag(self.data, 14, 6)

    @property
    def file_format_group_set(self) -> bool:
        return bit_flag(self.data, 14, 7)

    @property
    def crc(self) -> int:
        return bit_field(self.data, 15, 0, 8)


@dataclass(frozen=True)
class CsdV1(_CsdCommon):
    """Card Specific Data, version 1 (standard capacity cards)."""

    @property
    def device_size(self) -> int:
        return combined_field(self.data, [(6, 0, 2), (7, 0, 8), (8, 6, 2)])

    @property
    def max_read_current_vdd_max(self) -> int:
        return bit_field(self.data, 8, 0, 3)

    @property
    def max_read_current_vdd_min(self) -> int:
        return bit_field(self.data, 8, 3, 3)

    @property
    def max_write_current_vdd_max(self) -> int:
        return bit_field(self.data, 9, 2, 3)

    @property
    def max_write_current_vdd_min(self) -> int:
        return bit_field(self.data, 9, 5, 3)

    @property
    def device_size_multiplier(self) -> int:
        return combined_field(self.data, [(9, 0, 2), (10, 7, 1)])

    def card_capacity_bytes(self) -> int:
        """Return the card capacity in bytes."""
        multiplier = self.device_size_multiplier + self.read_block_length + 2
        return (self.device_size + 1) << multiplier

    def card_capacity_blocks(self) -> int:
        """Return the card capacity in 512-byte blocks."""
        multiplier = self.device_size_multiplier + self.read_block_length - 7
        if multiplier < 0:
            raise ValueError("CSD block length and multiplier are too small")
        return ((self.device_size + 1) << multiplier) & _U32_MASK


@dataclass(frozen=True)
class CsdV2(_CsdCommon):
    """Card Specific Data, version 2 (high capacity cards)."""

    @property
    def device_size(self) -> int:
        return combined_field(self.data, [(7, 0, 6), (8, 0, 8), (9, 0, 8)])

    def card_capacity_bytes(self) -> int:
        """Return the card capacity in bytes."""
        return (self.device_size + 1) * 512 * 1024

    def card_capacity_blocks(self) -> int:
        """Return the card capacity in 512-byte blocks."""
        return (self.device_size + 1) * 1024


Csd = CsdV1 | CsdV2