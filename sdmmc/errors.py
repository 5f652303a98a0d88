"""Errors raised by the volume and file layers."""

from __future__ import annotations

import enum
from typing import Any

_U16_MAX = 0xFFFF


class ErrorKind(enum.Enum):
    """Every way an operation on a volume, directory or file can fail."""

    DEVICE_ERROR = "The underlying block device threw an error"
    FORMAT_ERROR = "The filesystem is badly formatted"
    NO_SUCH_VOLUME = "The given volume index was bad"
    FILENAME_ERROR = "The given filename was bad"
    TOO_MANY_OPEN_VOLUMES = "Out of memory opening volumes"
    TOO_MANY_OPEN_DIRS = "Out of memory opening directories"
    TOO_MANY_OPEN_FILES = "Out of memory opening files"
    BAD_HANDLE = "Bad handle given"
    FILE_NOT_FOUND = "That file doesn't exist"
    FILE_ALREADY_OPEN = "You can't open a file twice or delete an open file"
    DIR_ALREADY_OPEN = "You can't open a directory twice"
    OPENED_DIR_AS_FILE = "You can't open a directory as a file"
    OPENED_FILE_AS_DIR = "You can't open a file as a directory"
    DELETE_DIR_AS_FILE = "You can't delete a directory as a file"
    VOLUME_STILL_IN_USE = "You can't close a volume with open files or directories"
    VOLUME_ALREADY_OPEN = "You can't open a volume twice"
    UNSUPPORTED = "We can't do that yet"
    END_OF_FILE = "Tried to read beyond end of file"
    BAD_CLUSTER = "Found a bad cluster"
    CONVERSION_ERROR = "Error while converting types"
    NOT_ENOUGH_SPACE = "The device does not have enough space for the operation"
    ALLOCATION_ERROR = "Cluster was not properly allocated by the library"
    UNTERMINATED_FAT_CHAIN = "Jumped to free space during FAT traversing"
    READ_ONLY = "Tried to open Read-Only file with write mode"
    FILE_ALREADY_EXISTS = "Tried to create an existing file"
    BAD_BLOCK_SIZE = "Bad block size - only 512 byte blocks supported"
    INVALID_OFFSET = "Bad offset given when seeking"
    DISK_FULL = "Disk is full"
    DIR_ALREADY_EXISTS = "A directory with that name already exists"

    @property
    def carries_detail(self) -> bool:
        """Whether errors of this kind hold an extra value."""
        return self in _KINDS_WITH_DETAIL


_KINDS_WITH_DETAIL = frozenset(
    {
        ErrorKind.DEVICE_ERROR,
        ErrorKind.FORMAT_ERROR,
        ErrorKind.FILENAME_ERROR,
        ErrorKind.BAD_BLOCK_SIZE,
    }
)


class SdmmcError(Exception):
    """An error of a given kind, with the value that kind carries.

    Device errors carry the block device's own error, format errors a
    message, filename errors the filename problem and bad block size errors
    the size that was found. No other kind carries a value.
    """

    def __init__(self, kind: ErrorKind, detail: Any = None) -> None:
        if not isinstance(kind, ErrorKind):
            raise TypeError(f"kind must be an ErrorKind, not {type(kind).__name__}")
        if kind.carries_detail:
            if detail is None:
                raise TypeError(f"{kind.name} needs a detail value")
        elif detail is not None:
            raise TypeError(f"{kind.name} takes no detail value")
        if kind is ErrorKind.FORMAT_ERROR and not isinstance(detail, str):
            raise TypeError("FORMAT_ERROR detail must be a message string")
        if kind is ErrorKind.BAD_BLOCK_SIZE:
            if isinstance(detail, bool) or not isinstance(detail, int):
                raise TypeError("BAD_BLOCK_SIZE detail must be an integer")
            if not 0 <= detail <= _U16_MAX:
                raise ValueError(f"block size {detail} is out of range")
        super().__init__(kind, detail)
        self.kind = kind
        self.detail = detail

    def __str__(self) -> str:
        if self.detail is None:
            return self.kind.value
        return f"{self.kind.value}: {self.detail}"

    def __repr__(self) -> str:
        if self.detail is None:
            return f"SdmmcError({self.kind.name})"
        return f"SdmmcError({self.kind.name}, {self.detail!r})"