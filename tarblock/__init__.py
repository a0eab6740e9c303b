import logging
from pathlib import Path
from typing import BinaryIO, Union

from .exceptions import (
    BoundsError,
    FieldTooLargeError,
    FormatError,
    InvalidOperationError,
    PositionError,
    StreamCapabilityError,
    TarballError,
)
from .header import TarHeader, decode_header, encode_header
from .models import TarballEntry
from .reader import TarballReader
from .schemas import ArchiveHeader
from .stream import BufferedEntryWriter, EntryReader, EntryWriter
from .writer import TarballWriter

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

ArchiveTarget = Union[str, Path, BinaryIO]


def open_archive_for_read(
    source: ArchiveTarget, leave_open: bool = False
) -> TarballReader:
    """Opens a reader on a path or on an already open binary stream."""
    if isinstance(source, (str, Path)):
        return TarballReader.open(source)
    return TarballReader(source, leave_open=leave_open)


def open_archive_for_write(
    target: ArchiveTarget, leave_open: bool = False
) -> TarballWriter:
    """Opens a writer on a path or on an already open binary stream."""
    if isinstance(target, (str, Path)):
        return TarballWriter.open(target)
    return TarballWriter(target, leave_open=leave_open)


__all__ = [
    "ArchiveHeader",
    "BoundsError",
    "BufferedEntryWriter",
    "EntryReader",
    "EntryWriter",
    "FieldTooLargeError",
    "FormatError",
    "InvalidOperationError",
    "PositionError",
    "StreamCapabilityError",
    "TarHeader",
    "TarballEntry",
    "TarballError",
    "TarballReader",
    "TarballWriter",
    "decode_header",
    "encode_header",
    "open_archive_for_read",
    "open_archive_for_write",
]
