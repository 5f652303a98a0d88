import pytest

from sdmmc.bitfields import bit_field, bit_flag, combined_field

CSD_V1 = bytes.fromhex("00 26 00 32 5F 59 83 C8 AD DB CF FF D2 40 40 A5")
CSD_V1_OTHER = bytes.fromhex("00 7F 00 32 5B 5A 83 AF 7F FF CF 80 16 80 00 6F")


def test_card_command_classes_from_csd():
    assert combined_field(CSD_V1, [(4, 0, 8), (5, 4, 4)]) == 0x5F5
    assert combined_field(CSD_V1_OTHER, [(4, 0, 8), (5, 4, 4)]) == 0x5B5


def test_device_size_from_csd():
    parts = [(6, 0, 2), (7, 0, 8), (8, 6, 2)]
    assert combined_field(CSD_V1, parts) == 3874
    assert combined_field(CSD_V1_OTHER, parts) == 3773


def test_read_block_length_field():
    assert bit_field(CSD_V1, 5, 0, 4) == 0x09
    assert bit_field(CSD_V1_OTHER, 5, 0, 4) == 0x0A


def test_flags_from_csd():
    assert bit_flag(CSD_V1, 6, 7) is True
    assert bit_flag(CSD_V1, 6, 6) is False
    assert bit_flag(CSD_V1, 10, 6) is True
    assert bit_flag(CSD_V1, 14, 6) is True
    assert bit_flag(CSD_V1_OTHER, 14, 6) is False


def test_multi_bit_fields_from_csd():
    assert bit_field(CSD_V1, 8, 3, 3) == 5
    assert bit_field(CSD_V1, 9, 5, 3) == 6
    assert combined_field(CSD_V1, [(9, 0, 2), (10, 7, 1)]) == 7
    assert bit_field(CSD_V1, 15, 0, 8) == 0xA5


@pytest.mark.parametrize("value", [0x00, 0x01, 0x5A, 0x80, 0xFF])
def test_full_byte_field_is_the_byte(value):
    data = bytes([value])
    assert bit_field(data, 0, 0, 8) == value


@pytest.mark.parametrize("value", [0x00, 0x37, 0xA5, 0xFF])
def test_flags_reassemble_byte(value):
    data = [value]
    rebuilt = sum(1 << bit for bit in range(8) if bit_flag(data, 0, bit))
    assert rebuilt == value


@pytest.mark.parametrize("value", [0x00, 0x3C, 0xC3, 0xFF])
def test_nibbles_reassemble_byte(value):
    data = [value]
    assert combined_field(data, [(0, 4, 4), (0, 0, 4)]) == value


def test_single_part_matches_bit_field():
    for offset in range(len(CSD_V1)):
        assert combined_field(CSD_V1, [(offset, 2, 5)]) == bit_field(CSD_V1, offset, 2, 5)


def test_empty_parts_give_zero():
    assert combined_field(CSD_V1, []) == 0


def test_field_result_fits_width():
    for start in range(8):
        for width in range(1, 9):
            assert bit_field([0xFF], 0, start, width) < (1 << width)


@pytest.mark.parametrize("start_bit, num_bits", [(8, 1), (-1, 1), (0, 0), (0, 9)])
def test_bad_field_spans_rejected(start_bit, num_bits):
    with pytest.raises(ValueError):
        bit_field(CSD_V1, 0, start_bit, num_bits)


def test_bad_flag_bit_rejected():
    with pytest.raises(ValueError):
        bit_flag(CSD_V1, 0, 8)


def test_offset_out_of_range():
    with pytest.raises(IndexError):
        bit_field(CSD_V1, 16, 0, 8)