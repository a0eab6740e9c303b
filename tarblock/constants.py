TAR_BLOCK_SIZE = 512
TAR_FOOTER_SIZE = 1024
CHUNK_SIZE_DEFAULT = 64 * 1024  # 64KB per copy step

# Regular file, rwx for everyone
DEFAULT_FILE_MODE = "0100777"
REGULAR_FILE_TYPE = "0"

USTAR_MAGIC = "ustar\0"
USTAR_VERSION = "00"

# (offset, width) of each USTAR field
NAME_FIELD = (0, 100)
MODE_FIELD = (100, 7)
UID_FIELD = (108, 8)
GID_FIELD = (116, 8)
SIZE_FIELD = (124, 12)
MTIME_FIELD = (136, 12)
CHECKSUM_FIELD = (148, 8)
TYPEFLAG_FIELD = (156, 1)
MAGIC_FIELD = (257, 6)
VERSION_FIELD = (263, 2)
