"""Helpers for pulling packed bit fields out of SD/MMC register bytes."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

_BITS_PER_BYTE = 8


def _check_span(start_bit: int, num_bits: int) -> None:
    if not 0 <= start_bit < _BITS_PER_BYTE:
        raise ValueError(f"start bit {start_bit} is outside a byte")
    if not 1 <= num_bits <= _BITS_PER_BYTE:
        raise ValueError(f"field width {num_bits} must be between 1 and 8 bits")


def bit_flag(data: Sequence[int], offset: int, bit: int) -> bool:
    """Return whether bit ``bit`` of ``data[offset]`` is set."""
    _check_span(bit, 1)
    return bool(data[offset] & (1 << bit))


def bit_field(data: Sequence[int], offset: int, start_bit: int, num_bits: int) -> int:
    """Return ``num_bits`` bits of ``data[offset]`` starting at ``start_bit``.

    Bits above the top of the byte are simply absent, so a field that runs
    past bit 7 yields only the bits that exist.
    """
    _check_span(start_bit, num_bits)
    mask = (1 << num_bits) - 1
    return (data[offset] >> start_bit) & mask


def combined_field(data: Sequence[int], parts: Iterable[tuple[int, int, int]]) -> int:
    """Join several byte-level fields into one value, most significant first.

    Each part is ``(offset, start_bit, num_bits)``; the value built so far is
    shifted left by the part's width before the part's bits are added.
    """
    result = 0
    for offset, start_bit, num_bits in parts:
        result = (result << num_bits) | bit_field(data, offset, start_bit, num_bits)
    return result