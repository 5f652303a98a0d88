import pytest

from sdmmc.sdtypes import (
    AcquireOpts,
    CardType,
    Delay,
    SdCardError,
    SdCardErrorKind,
)


class RecordingDelayer:
    def __init__(self):
        self.calls = []

    def delay_us(self, us):
        self.calls.append(us)


def test_acquire_opts_defaults():
    opts = AcquireOpts()
    assert opts.use_crc is True
    assert opts.acquire_retries == 50


def test_acquire_opts_custom_and_invalid():
    opts = AcquireOpts(use_crc=False, acquire_retries=3)
    assert (opts.use_crc, opts.acquire_retries) == (False, 3)
    with pytest.raises(ValueError):
        AcquireOpts(acquire_retries=-1)


def test_card_types_distinct():
    assert len({CardType.SD1, CardType.SD2, CardType.SDHC}) == 3
    assert CardType("SDHC") is CardType.SDHC


def test_timeout_command_carries_command():
    err = SdCardError(SdCardErrorKind.TIMEOUT_COMMAND, 8)
    assert err.kind is SdCardErrorKind.TIMEOUT_COMMAND
    assert err.detail == 8
    assert err == SdCardError(SdCardErrorKind.TIMEOUT_COMMAND, 8)
    assert not err == SdCardError(SdCardErrorKind.TIMEOUT_COMMAND, 0)


def test_crc_error_carries_pair():
    err = SdCardError(SdCardErrorKind.CRC_ERROR, (0x9FC5, 0x1234))
    assert err.detail == (0x9FC5, 0x1234)
    assert "0x9fc5" in str(err)


@pytest.mark.parametrize(
    "kind, detail",
    [
        (SdCardErrorKind.TIMEOUT_COMMAND, None),
        (SdCardErrorKind.TIMEOUT_ACOMMAND, 256),
        (SdCardErrorKind.CRC_ERROR, (1,)),
        (SdCardErrorKind.CRC_ERROR, (1, 0x10000)),
        (SdCardErrorKind.TRANSPORT, 1),
        ("TRANSPORT", None),
    ],
)
def test_bad_error_details_rejected(kind, detail):
    with pytest.raises(TypeError):
        SdCardError(kind, detail)


def test_error_without_detail_is_raisable():
    err = SdCardError(SdCardErrorKind.CARD_NOT_FOUND)
    assert err.kind is SdCardErrorKind.CARD_NOT_FOUND
    assert err.detail is None
    assert str(err) == SdCardErrorKind.CARD_NOT_FOUND.value
    with pytest.raises(SdCardError) as info:
        raise err
    assert info.value is err


def test_delay_waits_until_retries_exhausted():
    delayer = RecordingDelayer()
    delay = Delay(2)
    err = SdCardError(SdCardErrorKind.TIMEOUT_READ_BUFFER)
    delay.delay(delayer, err)
    delay.delay(delayer, err)
    assert delayer.calls == [10, 10]
    with pytest.raises(SdCardError) as info:
        delay.delay(delayer, err)
    assert info.value is err
    assert delayer.calls == [10, 10]


def test_delay_zero_raises_immediately():
    delayer = RecordingDelayer()
    with pytest.raises(SdCardError) as info:
        Delay(0).delay(delayer, SdCardError(SdCardErrorKind.CARD_NOT_FOUND))
    assert info.value.kind is SdCardErrorKind.CARD_NOT_FOUND
    assert delayer.calls == []


def test_delay_defaults():
    assert Delay.new_read().retries_left == 10_000
    assert Delay.new_write().retries_left == 50_000
    assert Delay.new_command().retries_left == 10_000


def test_delay_rejects_negative():
    with pytest.raises(ValueError):
        Delay(-1)


def test_delay_count_matches_retries():
    delayer = RecordingDelayer()
    delay = Delay(5)
    err = SdCardError(SdCardErrorKind.TIMEOUT_WAIT_NOT_BUSY)
    with pytest.raises(SdCardError):
        while True:
            delay.delay(delayer, err)
    assert len(delayer.calls) == 5
    assert delay.retries_left == 0