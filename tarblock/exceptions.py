import io


class TarballError(Exception):
    """Base class for every error raised by tarblock."""

    pass


class FormatError(TarballError, ValueError):
    """A header block could not be parsed."""

    pass


class FieldTooLargeError(TarballError, ValueError):
    """A value does not fit its fixed-width header field."""

    pass


class PositionError(TarballError, RuntimeError):
    """The archive stream is not at the offset a write requires."""

    pass


class BoundsError(TarballError, ValueError):
    """A write would exceed the length declared for the entry."""

    pass


class StreamCapabilityError(TarballError, io.UnsupportedOperation):
    """The archive stream cannot be read (reader) or written (writer)."""

    pass


class InvalidOperationError(TarballError, ValueError):
    """I/O on a closed view, or on an entry the archive has moved past."""

    pass
