"""SD and SDHC card access over SPI, with CRC helpers, CSD decoding and error types."""

__version__ = "0.1.0"
__all__ = ["bitfields", "proto", "csd", "errors", "sdtypes", "sdcard"]