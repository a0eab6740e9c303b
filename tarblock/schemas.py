from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from .constants import DEFAULT_FILE_MODE, REGULAR_FILE_TYPE, USTAR_MAGIC, USTAR_VERSION


class ArchiveHeader(BaseModel):
    """Metadata stored in the 512-byte block in front of every member."""

    name: str
    mode: str = DEFAULT_FILE_MODE  # Octal string, kept verbatim
    uid: int = Field(default=0, ge=0)
    gid: int = Field(default=0, ge=0)
    size: int = Field(default=0, ge=0)
    mtime: int = Field(default=0, ge=0)  # Seconds since the Unix epoch

    # Filled in on decode only. Encoding always computes its own.
    checksum: Optional[int] = None

    typeflag: str = REGULAR_FILE_TYPE
    magic: str = USTAR_MAGIC
    version: str = USTAR_VERSION

    @property
    def last_write_time(self) -> datetime:
        return datetime.fromtimestamp(self.mtime, tz=timezone.utc)

    @property
    def is_ustar(self) -> bool:
        return self.magic == USTAR_MAGIC
