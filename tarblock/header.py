import logging
from typing import Optional, Tuple

from .constants import (
    CHECKSUM_FIELD,
    GID_FIELD,
    MAGIC_FIELD,
    MODE_FIELD,
    MTIME_FIELD,
    NAME_FIELD,
    SIZE_FIELD,
    TAR_BLOCK_SIZE,
    TYPEFLAG_FIELD,
    UID_FIELD,
    VERSION_FIELD,
)
from .exceptions import FieldTooLargeError, FormatError
from .schemas import ArchiveHeader

logger = logging.getLogger(__name__)

OCTAL_DIGITS = b"01234567"


class TarHeader:
    """
    Low-level USTAR header codec.

    Only the plain USTAR layout is produced and accepted: numbers are
    always NUL-terminated octal text, names live in the 100-byte name
    field and nothing spills into extra blocks. A value that does not fit
    its field is an error, never silently truncated.
    """

    def __init__(self, header: ArchiveHeader):
        self.buffer = bytearray(TAR_BLOCK_SIZE)
        self.header = header

    def set_string(
        self, offset: int, field_width: int, value: str, encoding: str = "utf-8"
    ):
        """Writes an encoded string to the buffer. Fails if it does not fit."""
        data = value.encode(encoding)
        if len(data) > field_width:
            raise FieldTooLargeError(
                f"{offset=} '{value}' too long for field ({len(data)} > {field_width})"
            )

        self.buffer[offset : offset + len(data)] = data

    def set_octal(self, offset: int, field_width: int, value: int):
        """
        Writes a number in octal format following the TAR standard:
        1. Converts the number to octal.
        2. Pads with leading zeros.
        3. Leaves space for the NULL terminator at the end.
        """
        if value < 0:
            raise FieldTooLargeError(
                f"{offset=} negative value {value} cannot be stored as octal"
            )

        # Convert integer to octal string (e.g., 511 -> '777')
        octal_string = oct(int(value))[2:]

        # Available space for digits is field_width - 1, so a 12-byte field
        # holds at most 8^11 - 1 and an 8-byte field at most 8^7 - 1
        max_digits = field_width - 1

        if len(octal_string) > max_digits:
            raise FieldTooLargeError(
                f"Number {value} too large for octal field width {field_width}"
            )

        padded_octal = octal_string.zfill(max_digits)
        final_string = padded_octal + "\0"
        self.buffer[offset : offset + field_width] = final_string.encode("ascii")

    def calculate_checksum(self) -> int:
        """
        Calculates and writes the TAR header checksum (USTAR format).

        The checksum is the unsigned sum of the 512 header bytes, taken
        while the checksum field (offset 148, 8 bytes) holds ASCII spaces.
        It is stored as 6 octal digits, followed by a NULL byte and a space.
        """
        offset, width = CHECKSUM_FIELD

        self.buffer[offset : offset + width] = b" " * width

        total_sum = sum(self.buffer)

        final_string = oct(total_sum)[2:].zfill(6) + "\0" + " "
        self.buffer[offset : offset + width] = final_string.encode("ascii")
        return total_sum

    def build(self) -> bytes:
        """Constructs the 512-byte block for the header."""
        h = self.header

        self.set_string(*NAME_FIELD, h.name)
        self.set_string(*MODE_FIELD, h.mode, encoding="ascii")
        self.set_octal(*UID_FIELD, h.uid)
        self.set_octal(*GID_FIELD, h.gid)
        self.set_octal(*SIZE_FIELD, h.size)
        self.set_octal(*MTIME_FIELD, h.mtime)
        self.set_string(*TYPEFLAG_FIELD, h.typeflag, encoding="ascii")

        # USTAR signature
        self.set_string(*MAGIC_FIELD, h.magic, encoding="ascii")
        self.set_string(*VERSION_FIELD, h.version, encoding="ascii")

        self.calculate_checksum()
        block = bytes(self.buffer)
        if len(block) != TAR_BLOCK_SIZE:
            raise ValueError("Header is not 512 bytes long.")
        return block

    @classmethod
    def parse(cls, block: bytes) -> Optional[ArchiveHeader]:
        """
        Decodes a header block.

        Returns None for an all-zero block: it marks the end of the archive
        (or is a stray padding block) and is not a parse failure.

        The checksum field is read but NOT verified. Archives with a bad
        checksum are accepted as long as the numeric fields parse.
        """
        if len(block) != TAR_BLOCK_SIZE:
            raise FormatError(
                f"Header block must be {TAR_BLOCK_SIZE} bytes, got {len(block)}"
            )

        if not any(block):
            return None

        return ArchiveHeader(
            name=cls._get_string(block, NAME_FIELD),
            mode=cls._get_string(block, MODE_FIELD, encoding="ascii").strip(),
            uid=cls._get_owner_id(block, UID_FIELD, "uid"),
            gid=cls._get_owner_id(block, GID_FIELD, "gid"),
            size=cls._get_octal(block, SIZE_FIELD, "size"),
            mtime=cls._get_octal(block, MTIME_FIELD, "mtime"),
            checksum=cls._get_checksum(block),
            typeflag=cls._get_raw(block, TYPEFLAG_FIELD),
            magic=cls._get_raw(block, MAGIC_FIELD),
            version=cls._get_raw(block, VERSION_FIELD),
        )

    @staticmethod
    def _get_raw(block: bytes, field: Tuple[int, int]) -> str:
        offset, width = field
        return block[offset : offset + width].decode("latin-1")

    @staticmethod
    def _get_string(
        block: bytes, field: Tuple[int, int], encoding: str = "utf-8"
    ) -> str:
        """Reads a NUL-terminated string. Bytes after the first NUL are ignored."""
        offset, width = field
        data = block[offset : offset + width].split(b"\0", 1)[0]
        return data.decode(encoding, errors="replace")

    @staticmethod
    def _get_octal(block: bytes, field: Tuple[int, int], field_name: str) -> int:
        offset, width = field
        raw = block[offset : offset + width]
        digits = raw.split(b"\0", 1)[0].strip(b" ")

        if not digits:
            return 0

        # int(x, 8) would also take signs, underscores and inner spaces
        if digits.translate(None, OCTAL_DIGITS):
            raise FormatError(f"Invalid octal value in '{field_name}' field: {raw!r}")

        return int(digits, 8)

    @classmethod
    def _get_owner_id(
        cls, block: bytes, field: Tuple[int, int], field_name: str
    ) -> int:
        """
        Reads uid/gid. Only size and mtime drive the archive layout, so an
        owner id in another encoding (GNU base-256 for large ids) reads as 0.
        """
        try:
            return cls._get_octal(block, field, field_name)
        except FormatError:
            offset, width = field
            logger.debug(
                f"Unreadable '{field_name}' field, using 0: "
                f"{block[offset:offset + width]!r}"
            )
            return 0

    @classmethod
    def _get_checksum(cls, block: bytes) -> Optional[int]:
        try:
            return cls._get_octal(block, CHECKSUM_FIELD, "checksum")
        except FormatError:
            offset, width = CHECKSUM_FIELD
            logger.debug(f"Unreadable checksum field: {block[offset:offset + width]!r}")
            return None


def encode_header(header: ArchiveHeader) -> bytes:
    """Encodes a header into a 512-byte USTAR block."""
    return TarHeader(header).build()


def decode_header(block: bytes) -> Optional[ArchiveHeader]:
    """Decodes a 512-byte block. None means an all-zero (end marker) block."""
    return TarHeader.parse(block)
