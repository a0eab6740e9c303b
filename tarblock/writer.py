import logging
import shutil
from pathlib import Path
from typing import BinaryIO, Optional, Union

from .constants import CHUNK_SIZE_DEFAULT, TAR_FOOTER_SIZE
from .exceptions import InvalidOperationError, StreamCapabilityError
from .models import MtimeType, TarballEntry, to_timestamp
from .schemas import ArchiveHeader

logger = logging.getLogger(__name__)


class TarballWriter:
    """
    Appends entries to a USTAR archive stream.

    Entries are written in order: create one, write its content through
    exactly one of its writers and close that writer before creating the
    next. Closing the writer appends the two zero blocks that end a tar.
    """

    def __init__(
        self,
        fileobj: BinaryIO,
        leave_open: bool = False,
        chunk_size: int = CHUNK_SIZE_DEFAULT,
    ):
        if not fileobj.writable():
            raise StreamCapabilityError("Cannot write to stream")

        self.fileobj = fileobj
        self.leave_open = leave_open
        self.chunk_size = chunk_size
        # Entries whose content was written and padded
        self.entry_count = 0
        self._closed = False

    @classmethod
    def open(cls, path: Union[str, Path], **kwargs) -> "TarballWriter":
        """Creates (or truncates) an archive file. The writer owns the file."""
        logger.debug(f"Opening archive for writing: {path}")
        return cls(open(path, "wb"), leave_open=False, **kwargs)

    def create_entry(self, name: str) -> TarballEntry:
        """Starts a new entry at the current end of the archive."""
        if self._closed:
            raise InvalidOperationError("Cannot add entries to a closed archive")

        header = ArchiveHeader(name=name, mtime=to_timestamp(None))
        return TarballEntry(
            self.fileobj,
            self.fileobj.tell(),
            header,
            chunk_size=self.chunk_size,
            on_written=self._entry_written,
        )

    def write_entry(
        self,
        name: str,
        content: Union[bytes, bytearray, BinaryIO],
        mtime: Optional[MtimeType] = None,
    ) -> TarballEntry:
        """
        Writes a complete entry from bytes or a binary file object.

        Bytes and seekable files (from their current position) are written
        with their size known upfront. Anything else is buffered first.
        """
        entry = self.create_entry(name)

        if isinstance(content, (bytes, bytearray)):
            with entry.open_content_writer(mtime, size=len(content)) as target:
                target.write(content)
            return entry

        size = self._remaining_size(content)
        if size is None:
            with entry.open_content_writer(mtime) as target:
                shutil.copyfileobj(content, target, self.chunk_size)
            return entry

        with entry.open_content_writer(mtime, size=size) as target:
            bytes_remaining = size
            while bytes_remaining > 0:
                chunk = content.read(min(self.chunk_size, bytes_remaining))
                if not chunk:
                    logger.warning(
                        f"Content of '{name}' ended {bytes_remaining} bytes early"
                    )
                    break

                target.write(chunk)
                bytes_remaining -= len(chunk)

        return entry

    def _entry_written(self, entry: TarballEntry):
        self.entry_count += 1
        logger.debug(f"Entry '{entry.name}' completed ({entry.total_block_size} bytes)")

    @staticmethod
    def _remaining_size(content: BinaryIO) -> Optional[int]:
        if not content.seekable():
            return None

        position = content.tell()
        end = content.seek(0, 2)
        content.seek(position)
        return end - position

    def close(self):
        """Writes the footer, then closes the stream unless `leave_open`."""
        if self._closed:
            return

        self._closed = True
        try:
            self.fileobj.write(b"\0" * TAR_FOOTER_SIZE)
            self.fileobj.flush()
            logger.info(f"Archive completed with {self.entry_count} entries.")
        finally:
            if not self.leave_open:
                self.fileobj.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
