import pytest

from sdmmc.proto import CMD0, CMD8, crc16, crc7


def test_crc7_source_case():
    data = bytes.fromhex("00 26 00 32 5F 59 83 C8 AD DB CF FF D2 40 40")
    assert crc7(data) == 0xA5


def test_crc16_source_case():
    data = bytes.fromhex("00 26 00 32 5F 5A 83 AE FE FB CF FF 92 80 40 DF")
    assert crc16(data) == 0x9FC5


def test_crc7_go_idle_frame():
    frame = bytes([0x40 | CMD0, 0, 0, 0, 0])
    assert crc7(frame) == 0x95


def test_crc7_send_if_cond_frame():
    frame = bytes([0x40 | CMD8, 0x00, 0x00, 0x01, 0xAA])
    assert crc7(frame) == 0x87


def test_crc16_check_value():
    assert crc16(b"123456789") == 0x31C3


def test_crc16_empty_is_zero():
    assert crc16(b"") == 0


@pytest.mark.parametrize(
    "data",
    [b"", b"\x00", b"\xff" * 7, bytes(range(64)), b"hello world"],
)
def test_crc7_end_bit_always_set(data):
    result = crc7(data)
    assert result & 1 == 1
    assert 0 <= result <= 0xFF


@pytest.mark.parametrize(
    "data",
    [b"\x01", bytes(range(256)), b"\xaa\x55" * 10, bytes(512)],
)
def test_crc16_residue_is_zero(data):
    crc = crc16(data)
    assert 0 <= crc <= 0xFFFF
    assert crc16(data + crc.to_bytes(2, "big")) == 0


def test_crc16_accepts_list_of_ints():
    data = bytes.fromhex("00 26 00 32 5F 5A 83 AE FE FB CF FF 92 80 40 DF")
    assert crc16(list(data)) == crc16(data)


def test_crc16_detects_single_bit_change():
    data = bytearray(bytes.fromhex("00 26 00 32 5F 5A 83 AE FE FB CF FF 92 80 40 DF"))
    original = crc16(data)
    data[3] ^= 0x01
    assert crc16(data) != original
    assert crc16(data + original.to_bytes(2, "big")) != 0