"""
Per-entry byte streams over a shared archive stream.

Each view is a non-seekable `io.RawIOBase`, so it can be handed to anything
that expects a binary file object (`gzip.GzipFile`, `shutil.copyfileobj`,
`io.BufferedReader`...). Only one view per archive should be open at a time.

Writers finish their entry on close(): padding, and for the buffered writer
the header and the content itself. close() does this once, whichever way the
view is closed (explicit call, `with` block exit, garbage collection).
"""

import io
import logging
import shutil
from typing import TYPE_CHECKING, Optional

from .constants import CHUNK_SIZE_DEFAULT
from .exceptions import BoundsError, InvalidOperationError

if TYPE_CHECKING:
    from .models import MtimeType, TarballEntry

logger = logging.getLogger(__name__)


class _EntryView(io.RawIOBase):
    def __init__(self, entry: "TarballEntry"):
        super().__init__()
        self.entry = entry
        self._position = 0

    def seekable(self) -> bool:
        return False

    def tell(self) -> int:
        """Bytes consumed (or written) so far, relative to the content start."""
        self._check_open("tell on")
        return self._position

    def close(self):
        if self.closed:
            return

        try:
            self._finalize()
        except Exception:
            logger.error(f"Failed to finalize entry '{self.entry.name}'")
            raise
        finally:
            super().close()

    def _finalize(self):
        pass

    def _check_open(self, action: str):
        if self.closed:
            raise InvalidOperationError(f"Cannot {action} a closed stream")


class EntryReader(_EntryView):
    """Read-only window over `[content_start, content_start + size)`."""

    def __init__(self, entry: "TarballEntry"):
        super().__init__(entry)
        self.length = entry.size
        entry.seek_content_start()

    def readable(self) -> bool:
        return True

    @property
    def remaining(self) -> int:
        return self.length - self._position

    def read(self, size: Optional[int] = -1) -> bytes:
        self._check_open("read from")
        if self.entry.expired:
            raise InvalidOperationError(
                f"Entry '{self.entry.name}' is no longer current, "
                f"the archive moved past it"
            )

        if size is None or size < 0:
            size = self.remaining

        # Never hand out bytes past the window, a short read is fine
        size = min(size, self.remaining)
        if size == 0:
            return b""

        data = self.entry.fileobj.read(size)
        self._position += len(data)
        return data

    def readall(self) -> bytes:
        return self.read(-1)

    def readinto(self, buffer) -> int:
        view = memoryview(buffer).cast("B")
        data = self.read(len(view))
        view[: len(data)] = data
        return len(data)


class EntryWriter(_EntryView):
    """
    Writer for an entry whose size was declared upfront.

    The header is already in the archive, content goes straight through.
    Writing past the declared size fails. Writing less is allowed: on close
    the archive skips to the declared end and pads from there.
    """

    def __init__(self, entry: "TarballEntry"):
        super().__init__(entry)
        self.length = entry.size

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:
        self._check_open("write to")

        count = memoryview(data).nbytes
        if self._position + count > self.length:
            raise BoundsError(
                f"Attempted to write outside stream bounds "
                f"({self._position} + {count} > {self.length})"
            )

        self.entry.fileobj.write(data)
        self._position += count
        return count

    def _finalize(self):
        self.entry.write_padding()


class BufferedEntryWriter(_EntryView):
    """
    Writer for content of unknown size.

    Everything is kept in memory until close(), where the header is written
    with the final size at the entry's start, followed by the content and
    its padding. The archive stream must still be at the entry start then.
    """

    def __init__(
        self,
        entry: "TarballEntry",
        mtime: Optional["MtimeType"] = None,
        chunk_size: Optional[int] = None,
    ):
        super().__init__(entry)
        self.mtime = mtime
        self.chunk_size = chunk_size or entry.chunk_size or CHUNK_SIZE_DEFAULT
        self._buffer = io.BytesIO()

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:
        self._check_open("write to")
        count = self._buffer.write(data)
        self._position += count
        return count

    def _finalize(self):
        entry = self.entry
        try:
            entry.ensure_start()
            entry.update_header(size=self._position, mtime=self.mtime)
            entry.write_header()

            self._buffer.seek(0)
            shutil.copyfileobj(self._buffer, entry.fileobj, self.chunk_size)
            entry.write_padding()
        finally:
            self._buffer.close()
