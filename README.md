# sdmmc

Talk to SD and SDHC cards over an SPI bus from Python.

The package holds:

- `sdmmc.sdcard.SdCard`: a card driver. It runs the SPI-mode start-up
  sequence and tells SD v1, SD v2 and SDHC cards apart. It reads and writes
  512-byte blocks, one at a time or several in a row.
- `sdmmc.csd.CsdV1` and `sdmmc.csd.CsdV2`: decoders for the 16-byte Card
  Specific Data register. They expose its fields as properties and give the
  card's capacity in bytes and in blocks.
- `sdmmc.proto`: the protocol's command numbers, response bits and data
  tokens, plus the two checksums it uses: `crc7` for command frames and
  `crc16` for data blocks.
- `sdmmc.sdtypes`: `AcquireOpts`, `CardType`, `SdCardError`,
  `SdCardErrorKind` and the retry helper `Delay`.
- `sdmmc.bitfields`: `bit_flag`, `bit_field` and `combined_field`, which
  extract packed bit fields from register bytes.
- `sdmmc.errors`: `SdmmcError` and `ErrorKind`, which describe failures at
  the volume, directory and file level.

The package has no dependencies outside the standard library.

## Installing

```console
pip install .
```

Running the tests needs the `test` extra:

```console
pip install ".[test]"
pytest
```

## Driving a card

`SdCard` needs three objects from you:

- an SPI bus with `transfer(data)`, which returns as many bytes as it was
  given, and `write(data)`,
- a chip-select pin with `set_low()` and `set_high()`,
- a delayer with `delay_us(us)`.

The card is set up the first time an operation needs it. `AcquireOpts`
controls CRC checking of data blocks (`use_crc`, on by default) and how many
times start-up is retried before the card counts as missing
(`acquire_retries`, 50 by default).

```python
from sdmmc.sdcard import SdCard
from sdmmc.sdtypes import AcquireOpts

card = SdCard(spi, cs, delayer, AcquireOpts(use_crc=True, acquire_retries=50))
print("Card size is", card.num_bytes(), "bytes")
print("Blocks:", card.num_blocks())
print("Card type:", card.get_card_type())   # None if the card cannot be set up

blocks = card.read(0, 1, "read_mbr")   # list of 512-byte blocks
card.write(blocks, 0)
```

Other methods:

- `erase_single_block_enabled()` reports a bit from the card's CSD.
- `mark_card_uninit()` forgets the card's state, so the next operation runs
  start-up again.
- `mark_card_as_init(card_type)` declares that the card is already set up.
  Use it only when that is really so.
- `spi(func)` calls `func` once with the SPI bus, for example to change the
  bus clock.

Every driver failure raises `SdCardError`. Its `kind` attribute holds an
`SdCardErrorKind`. Command timeouts carry the command number in `detail`.
CRC mismatches carry the pair `(crc_from_card, crc_calculated)`. Exceptions
raised by the SPI bus become `TRANSPORT` errors. Exceptions raised by the
chip-select pin become `GPIO_ERROR` errors.

## Decoding a CSD

```python
from sdmmc.csd import CsdV2

csd = CsdV2(bytes.fromhex("400E00325B5900001D697F800A40008B"))
csd.device_size             # 7529
csd.card_capacity_bytes()   # 3947888640
csd.card_capacity_blocks()  # 7710720
```

## Checksums

```python
from sdmmc.proto import crc7, crc16

crc7(bytes.fromhex("002600325F5983C8ADDBCFFFD24040"))     # 0xA5
crc16(bytes.fromhex("002600325F5A83AEFEFBCFFF928040DF"))  # 0x9FC5
```

## What this package does not do

The package works at the level of raw 512-byte blocks. It does not read
partition tables, mount FAT volumes, list directories or open files.
`SdmmcError` and `ErrorKind` name the failures such a layer would report,
but no such layer is included.