import logging
import time
from datetime import datetime, timezone
from typing import BinaryIO, Callable, Optional, Union

from .constants import CHUNK_SIZE_DEFAULT, TAR_BLOCK_SIZE
from .exceptions import InvalidOperationError, PositionError
from .header import encode_header
from .schemas import ArchiveHeader
from .stream import BufferedEntryWriter, EntryReader, EntryWriter

logger = logging.getLogger(__name__)

MtimeType = Union[datetime, int, float]


def padding_for(size: int) -> int:
    """Zero bytes needed after `size` bytes of content to reach a block boundary."""
    return (TAR_BLOCK_SIZE - (size % TAR_BLOCK_SIZE)) % TAR_BLOCK_SIZE


def padded_size(size: int) -> int:
    """Space taken by `size` bytes of content once padded: ceil(size/512)*512."""
    return size + padding_for(size)


def to_timestamp(value: Optional[MtimeType]) -> int:
    """Whole seconds since the epoch. None means now, a naive datetime is UTC."""
    if value is None:
        return int(time.time())
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp())
    return int(value)


class TarballEntry:
    """
    A member of the archive: one header block followed by its content.

    The entry only knows offsets into the shared archive stream, it holds
    no data. It stays usable while the archive stream is inside its region:

    - read side: the reader expires it once iteration moves to the next header.
    - write side: it is spent once its padding has been emitted.
    """

    def __init__(
        self,
        fileobj: BinaryIO,
        start_offset: int,
        header: ArchiveHeader,
        chunk_size: int = CHUNK_SIZE_DEFAULT,
        on_written: Optional[Callable[["TarballEntry"], None]] = None,
    ):
        self.fileobj = fileobj
        self.start_offset = start_offset
        self.header = header
        self.chunk_size = chunk_size
        self.on_written = on_written

        self._expired = False
        self._written = False

    def __repr__(self) -> str:
        return (
            f"<TarballEntry name={self.name!r} size={self.size} "
            f"offset={self.start_offset}>"
        )

    @property
    def name(self) -> str:
        return self.header.name

    @property
    def mode(self) -> str:
        return self.header.mode

    @property
    def size(self) -> int:
        return self.header.size

    @property
    def mtime(self) -> int:
        return self.header.mtime

    @property
    def last_write_time(self) -> datetime:
        return self.header.last_write_time

    @property
    def typeflag(self) -> str:
        return self.header.typeflag

    @property
    def expired(self) -> bool:
        return self._expired

    @property
    def content_start_offset(self) -> int:
        return self.start_offset + TAR_BLOCK_SIZE

    @property
    def content_end_offset(self) -> int:
        return self.content_start_offset + self.size

    @property
    def padding_size(self) -> int:
        return padding_for(self.size)

    @property
    def end_offset(self) -> int:
        """Offset of the block that follows this entry."""
        return self.content_start_offset + padded_size(self.size)

    @property
    def total_block_size(self) -> int:
        return self.end_offset - self.start_offset

    def open_content_reader(self) -> EntryReader:
        """Opens a read-only view over the entry's content."""
        if self.expired:
            raise InvalidOperationError(
                f"Entry '{self.name}' is no longer current, the archive moved past it"
            )
        return EntryReader(self)

    def open_content_writer(
        self, mtime: Optional[MtimeType] = None, size: Optional[int] = None
    ) -> Union[EntryWriter, BufferedEntryWriter]:
        """
        Opens a write view for the entry's content.

        With `size` the header goes out now and content streams straight into
        the archive. Without it content is buffered in memory and the header
        is written on close, once the size is known.
        """
        if self._written:
            raise InvalidOperationError(f"Entry '{self.name}' was already written")

        if size is None:
            return BufferedEntryWriter(self, mtime)

        self.ensure_start()
        self.update_header(size=size, mtime=mtime)
        self.write_header()

        # Content is streamed unbuffered, so it must land right after the header
        self.ensure_content_start()
        return EntryWriter(self)

    def update_header(self, size: int, mtime: Optional[MtimeType]):
        self.header = self.header.model_copy(
            update={"size": size, "mtime": to_timestamp(mtime)}
        )

    def expire(self):
        self._expired = True

    def seek_content_start(self):
        if self.fileobj.tell() != self.content_start_offset:
            self.fileobj.seek(self.content_start_offset)

    def ensure_start(self):
        position = self.fileobj.tell()
        if position != self.start_offset:
            raise PositionError(
                f"Stream is not at expected entry start position "
                f"(expected {self.start_offset}, got {position})"
            )

    def ensure_content_start(self):
        position = self.fileobj.tell()
        if position != self.content_start_offset:
            raise PositionError(
                f"Stream is not at expected content start position "
                f"(expected {self.content_start_offset}, got {position})"
            )

    def ensure_end(self):
        """Moves a short write up to the content boundary. Overshooting is an error."""
        position = self.fileobj.tell()
        content_end = self.content_end_offset

        if position < content_end:
            logger.debug(
                f"Entry '{self.name}' short by {content_end - position} bytes, "
                f"skipping to {content_end}"
            )
            self.fileobj.seek(content_end)
        elif position > content_end:
            raise PositionError(
                f"Stream is past expected end position "
                f"(expected {content_end}, got {position})"
            )

    def write_header(self):
        block = encode_header(self.header)
        self.fileobj.write(block)
        logger.debug(
            f"Header written for '{self.name}' at {self.start_offset} "
            f"(size={self.size}, mtime={self.mtime})"
        )

    def write_padding(self):
        self.ensure_end()

        if self.padding_size:
            self.fileobj.write(b"\0" * self.padding_size)

        self._written = True
        if self.on_written is not None:
            self.on_written(self)
