"""
Declarative fixed-width field tables.

An EDF header is a run of ASCII fields of fixed byte sizes. Each table is
described once, as a list of tuples in the same spirit as the numpy dtype
descriptions used by binary readers::

    description = [
        # (name, size, decode, title, units, description)
        ("version", 8, "int", "Version"),
        ("reserved", 44, "raw", "Reserved"),
    ]

and a single FieldTable computes offsets, decodes and encodes from it, so the
read path and the write path can never disagree about where a field lives.

The same table serves two layouts:
  * a single record (`count=1`), the main header;
  * a field-major block of `count` records, the signal header, where the
    `count` entries of the first field come first, then the `count` entries of
    the second field, and so on.
"""

from collections import namedtuple

from .exceptions import MalformedFieldError
from .utils import read_byte_range

TEXT_ENCODING = "latin-1"

Field = namedtuple("Field", ["name", "size", "decode", "title", "units", "description"], defaults=("", ""))


def decode_raw(text):
    return text


def decode_str(text):
    return text.strip()


def decode_int(text):
    """
    Integer content, "1.0" style content is accepted and truncated.
    """
    text = text.strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return int(float(text))
    except OverflowError as e:
        raise ValueError(text) from e


def decode_float(text):
    return float(text.strip())


decoders = {
    "raw": decode_raw,
    "str": decode_str,
    "int": decode_int,
    "float": decode_float,
}


def format_value(value, size):
    """
    Render a value as the text stored in a field of `size` bytes.

    Floats whose shortest representation does not fit are written with fewer
    significant digits instead of being cut in the middle of the number.
    """
    if value is None:
        return ""
    if isinstance(value, float):
        text = str(value)
        precision = size
        while len(text) > size and precision > 1:
            precision -= 1
            text = f"{value:.{precision}g}"
        return text
    return str(value)


class FieldTable:
    """
    Ordered list of named fixed-width fields.

    Parameters
    ----------
    description: list of tuple
        (name, size, decode[, title[, units[, description]]]) where decode is
        one of "raw", "str", "int", "float"
    """

    def __init__(self, description):
        self.fields = [Field(*entry) for entry in description]
        self._by_name = {}
        self._offsets = {}
        offset = 0
        for field in self.fields:
            if field.decode not in decoders:
                raise ValueError(f"Unknown decode rule '{field.decode}' for field '{field.name}'")
            self._by_name[field.name] = field
            self._offsets[field.name] = offset
            offset += field.size
        self.total_size = offset

    def __iter__(self):
        return iter(self.fields)

    def __len__(self):
        return len(self.fields)

    def __contains__(self, name):
        return name in self._by_name

    def __getitem__(self, name):
        return self._by_name[name]

    @property
    def names(self):
        return [field.name for field in self.fields]

    @property
    def sizes(self):
        return [field.size for field in self.fields]

    def size(self, name):
        return self._by_name[name].size

    def offset(self, name):
        """Offset of a field: the sum of the sizes of all fields before it."""
        return self._offsets[name]

    def entry_offset(self, name, index=0, count=1, base_offset=0):
        """
        Absolute offset of entry `index` of a field inside a field-major block
        of `count` records starting at `base_offset`.
        """
        if not 0 <= index < max(count, 1):
            raise IndexError(f"Entry {index} out of range for a block of {count}")
        return base_offset + count * self._offsets[name] + index * self._by_name[name].size

    def decode(self, name, raw):
        field = self._by_name[name]
        if isinstance(raw, bytes):
            raw = raw.decode(TEXT_ENCODING)
        try:
            return decoders[field.decode](raw)
        except ValueError as e:
            raise MalformedFieldError(name, raw) from e

    def encode(self, name, value):
        """
        Left-justify the text of `value`, then pad or truncate it to exactly
        the size of the field.
        """
        field = self._by_name[name]
        text = format_value(self.coerce(name, value), field.size)
        return text.ljust(field.size)[:field.size].encode(TEXT_ENCODING, errors="replace")

    def coerce(self, name, value):
        """
        Value of a numeric field as its decode rule returns it, so that what
        is written decodes back to the same text: -500 is written "-500.0" in
        a float field, -32768.0 is written "-32768" in an int field.
        """
        field = self._by_name[name]
        if value is None or field.decode not in ("int", "float"):
            return value
        try:
            if field.decode == "float":
                return float(value)
            return decode_int(str(value))
        except (TypeError, ValueError) as e:
            raise MalformedFieldError(name, str(value)) from e

    def read(self, fid, base_offset=0, count=1):
        """
        Read a block of `count` records laid out field-major.

        Returns a dict name -> list of `count` decoded values and the list of
        MalformedFieldError of the entries that could not be decoded (with
        their `index` in the block). Malformed entries are None in the dict,
        deciding what that means is left to the caller.
        """
        values = {}
        malformed = []
        for field in self.fields:
            start = base_offset + count * self._offsets[field.name]
            raw = read_byte_range(fid, start, field.size * count)
            entries = []
            for index in range(count):
                chunk = raw[index * field.size:(index + 1) * field.size]
                try:
                    entries.append(self.decode(field.name, chunk))
                except MalformedFieldError as e:
                    e.index = index
                    entries.append(None)
                    malformed.append(e)
            values[field.name] = entries
        return values, malformed

    def pack(self, rows):
        """
        Encode `rows` field-major. A row is a mapping or any object carrying
        the fields as attributes.
        """
        chunks = []
        for field in self.fields:
            for row in rows:
                if isinstance(row, dict):
                    value = row.get(field.name)
                else:
                    value = getattr(row, field.name)
                chunks.append(self.encode(field.name, value))
        return b"".join(chunks)

    def write(self, fid, rows):
        data = self.pack(rows)
        fid.write(data)
        return len(data)

    def patch(self, fid, name, value, index=0, count=1, base_offset=0):
        """
        Rewrite a single entry in place, nothing else in the file is touched.
        Returns the offset that was written.
        """
        offset = self.entry_offset(name, index=index, count=count, base_offset=base_offset)
        fid.seek(offset)
        fid.write(self.encode(name, value))
        return offset


header_description = [
    ("version", 8, "int", "Version"),
    ("local_patient_identification", 80, "str", "Local Patient Identification"),
    ("local_recording_identification", 80, "str", "Local Recording Identification"),
    ("start_date_of_recording", 8, "raw", "Start Date of Recording", "", "(dd.mm.yy)"),
    ("start_time_of_recording", 8, "raw", "Start Time of Recording", "", "(hh.mm.ss)"),
    ("number_of_bytes_in_header", 8, "int", "Number of Bytes in Header"),
    ("reserved", 44, "raw", "Reserved"),
    ("number_of_data_records", 8, "int", "Number of Data Records"),
    ("duration_of_a_data_record", 8, "int", "Duration of a Data Record", "second"),
    ("number_of_signals", 4, "int", "Number of Signals"),
]

signal_description = [
    ("label", 16, "str", "Label"),
    ("transducer_type", 80, "str", "Transducer Type"),
    ("physical_dimension", 8, "str", "Physical Dimension"),
    ("physical_minimum", 8, "float", "Physical Minimum"),
    ("physical_maximum", 8, "float", "Physical Maximum"),
    ("digital_minimum", 8, "int", "Digital Minimum"),
    ("digital_maximum", 8, "int", "Digital Maximum"),
    ("prefiltering", 80, "str", "Prefiltering"),
    ("samples_per_data_record", 8, "int", "Samples Per Data Record"),
    ("reserved_area", 32, "raw", "Reserved Area"),
]

HEADER_FIELDS = FieldTable(header_description)
SIGNAL_FIELDS = FieldTable(signal_description)

HEADER_OFFSET = HEADER_FIELDS.total_size
SIGNAL_HEADER_SIZE = SIGNAL_FIELDS.total_size
RESERVED_SIZE = HEADER_FIELDS.size("reserved")
