"""
Exceptions raised by edfize.

All errors derive from :class:`EdfError` so callers can catch the whole family,
and each failure kind has its own class so callers can tell a fatal structural
problem (a truncated header) from a recoverable one (a short epoch read).
"""


class EdfError(Exception):
    """Base class of every error raised by edfize."""


class TruncatedHeaderError(EdfError):
    """The source is shorter than the header it declares."""

    def __init__(self, filename, expected_size, actual_size):
        self.filename = filename
        self.expected_size = expected_size
        self.actual_size = actual_size
        super().__init__(
            f"Header of '{filename}' is truncated: expected {expected_size} bytes, found {actual_size}"
        )


class ShortReadError(EdfError):
    """A byte range was requested past the end of the source."""

    def __init__(self, offset, length, available):
        self.offset = offset
        self.length = length
        self.available = available
        super().__init__(f"Requested {length} bytes at offset {offset}, only {available} available")


class RecordsUnavailableError(ShortReadError):
    """The data records needed by a load are not present in the file."""

    def __init__(self, first_record, record_count, available_records, offset=0, length=0, available=0):
        self.first_record = first_record
        self.record_count = record_count
        self.available_records = available_records
        EdfError.__init__(
            self,
            f"Data records {first_record}..{first_record + record_count - 1} requested, "
            f"file holds {available_records}",
        )
        self.offset = offset
        self.length = length
        self.available = available


class MalformedFieldError(EdfError, ValueError):
    """A fixed-width field can not be parsed with its decode rule."""

    def __init__(self, name, raw, index=None):
        self.name = name
        self.raw = raw
        self.index = index
        super().__init__(f"Field '{name}' holds malformed content {raw!r}")


class UndefinedScaleError(EdfError, ZeroDivisionError):
    """The digital or the physical range of a signal has no span."""

    def __init__(self, digital_minimum, digital_maximum, physical_minimum, physical_maximum):
        self.digital_minimum = digital_minimum
        self.digital_maximum = digital_maximum
        self.physical_minimum = physical_minimum
        self.physical_maximum = physical_maximum
        super().__init__(
            f"Scale undefined for digital [{digital_minimum}, {digital_maximum}] "
            f"physical [{physical_minimum}, {physical_maximum}]"
        )


class NoDestinationError(EdfError):
    """A write was requested but no file path is known."""
