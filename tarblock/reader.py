import logging
from pathlib import Path
from typing import BinaryIO, Generator, Union

from .constants import TAR_BLOCK_SIZE
from .exceptions import StreamCapabilityError
from .header import decode_header
from .models import TarballEntry

logger = logging.getLogger(__name__)


class TarballReader:
    """
    Sequential reader over a USTAR archive stream.

    Entries come out one at a time, in archive order. While an entry is the
    current one its content can be read with `entry.open_content_reader()`;
    moving on to the next entry expires it.
    """

    def __init__(self, fileobj: BinaryIO, leave_open: bool = False):
        if not fileobj.readable():
            raise StreamCapabilityError("Cannot read from stream")

        self.fileobj = fileobj
        self.leave_open = leave_open
        self._closed = False

    @classmethod
    def open(cls, path: Union[str, Path]) -> "TarballReader":
        """Opens an archive file for reading. The reader owns the file."""
        logger.debug(f"Opening archive for reading: {path}")
        return cls(open(path, "rb"), leave_open=False)

    def entries(self) -> Generator[TarballEntry, None, None]:
        """
        Yields the entries found from the current stream position onwards.

        The generator drives the stream: whether or not the caller read the
        content, asking for the next entry seeks past the current one. It is
        not restartable, and stopping early leaves the stream where it was
        (mid-archive), it does not rewind.

        Iteration ends at the first block that cannot be read whole. Zero
        blocks are skipped, so a missing or partial footer is tolerated.
        """
        while True:
            offset = self.fileobj.tell()
            block = self.fileobj.read(TAR_BLOCK_SIZE)

            if len(block) < TAR_BLOCK_SIZE:
                logger.debug(f"End of archive at offset {offset}")
                return

            header = decode_header(block)
            if header is None:
                logger.debug(f"Zero block at offset {offset}, skipping")
                continue

            entry = TarballEntry(self.fileobj, offset, header)
            logger.debug(f"Entry '{entry.name}' at {offset} ({entry.size} bytes)")

            yield entry

            entry.expire()
            self.fileobj.seek(entry.end_offset)

    def __iter__(self):
        return self.entries()

    def close(self):
        if self._closed:
            return

        self._closed = True
        if not self.leave_open:
            self.fileobj.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
