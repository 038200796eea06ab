"""
Class for reading, building and writing EDF and EDF+ files.

An Edf holds the main header fields as attributes and an ordered SignalList.
Opening a file decodes the headers only, samples are loaded on request:

    * load_signals(): every data record
    * load_epoch(epoch_number, epoch_size): the data records of one time window
    * load_signal_preview(): the first data record

Loads append to the sample buffers of the signals, call reset_signals() (or
Signal.reset_values()) to start from empty buffers.

Usage:
    >>> edf = Edf("recording.edf")
    >>> edf.load_epoch(0, 30)
    >>> ecg = edf.signals.find_by_label("ecg")
    >>> ecg.physical_values

    >>> edf = Edf.create(local_patient_identification="X", duration_of_a_data_record=1)
    >>> edf.signals.append(signal)
    >>> edf.write("new.edf", is_continuous=True)

EDF Format Specifications: https://www.edfplus.info/
"""

import datetime
import logging
import os

import numpy as np

from edfize import logging_handler

from .exceptions import (
    MalformedFieldError,
    NoDestinationError,
    RecordsUnavailableError,
    TruncatedHeaderError,
)
from .fields import HEADER_FIELDS, HEADER_OFFSET, RESERVED_SIZE, SIGNAL_FIELDS
from .layout import RecordLayout, SIZE_OF_SAMPLE_IN_BYTES, header_byte_size, record_count_for_samples
from .signal import Signal, SignalList
from .streaming import DEFAULT_BATCH_SIZE, StreamingWriter
from .utils import get_file_size, read_byte_range, read_samples

# a malformed value in these fields makes the rest of the file unreadable
required_header_fields = ("number_of_signals",)
required_signal_fields = ("samples_per_data_record",)


def parse_date(text):
    """
    datetime.date of a "dd.mm.yy" string, None when it is not a valid date.
    Years 85-99 are 1985-1999, the others 2000-2084.
    """
    try:
        dd, mm, yy = (int(float(part)) for part in str(text).strip().split("."))
        yyyy = yy + 1900 if yy >= 85 else yy + 2000
        return datetime.date(yyyy, mm, dd)
    except (TypeError, ValueError):
        return None


def parse_time(text):
    try:
        hh, mm, ss = (int(float(part)) for part in str(text).strip().split("."))
        return datetime.time(hh, mm, ss)
    except (TypeError, ValueError):
        return None


class Edf:
    """
    An EDF(+) file: header fields, signals and their samples.

    Parameters
    ----------
    filename: str or None, default: None
        file to decode, or destination of a new file
    initialize_empty: bool, default: False
        do not read `filename`, start an empty file instead
    """

    def __init__(self, filename=None, initialize_empty=False):
        fullname = self.__class__.__module__ + "." + self.__class__.__name__
        self.logger = logging.getLogger(fullname)
        # the package logger only gets a handler when nobody configured logging
        corename = self.__class__.__module__.split(".")[0]
        corelogger = logging.getLogger(corename)
        rootlogger = logging.getLogger()
        if not corelogger.handlers and not rootlogger.handlers:
            corelogger.addHandler(logging_handler)

        self.filename = None if filename is None else os.fspath(filename)
        self._signals = SignalList()
        self.malformed_fields = []
        self.is_new_file = initialize_empty or filename is None

        if self.is_new_file:
            self.initialize_empty_edf()
        else:
            self.read_header()
            self.read_signal_header()

    @classmethod
    def create(cls, filename=None, **header):
        """
        New empty file, header fields given as keyword arguments.
        """
        edf = cls(filename, initialize_empty=True)
        for name, value in header.items():
            if name not in HEADER_FIELDS:
                raise KeyError(f"Unknown header field '{name}'")
            setattr(edf, name, value)
        return edf

    def initialize_empty_edf(self):
        now = datetime.datetime.now()
        self.version = 0
        self.local_patient_identification = ""
        self.local_recording_identification = ""
        self.start_date_of_recording = now.strftime("%d.%m.%y")
        self.start_time_of_recording = now.strftime("%H.%M.%S")
        self.number_of_bytes_in_header = 0
        self.reserved = " " * RESERVED_SIZE
        self.number_of_data_records = 0
        self.duration_of_a_data_record = 1
        self.number_of_signals = 0

    @property
    def signals(self):
        return self._signals

    @signals.setter
    def signals(self, signals):
        self._signals = signals if isinstance(signals, SignalList) else SignalList(signals)

    def source_name(self):
        return self.filename

    @property
    def ns(self):
        if self.number_of_signals is None:
            return len(self._signals)
        return self.number_of_signals

    @property
    def layout(self):
        return RecordLayout.from_signals(self._signals, record_duration=self.duration_of_a_data_record)

    # header decoding

    def _check_malformed(self, malformed, required):
        for error in malformed:
            if error.name in required:
                raise error
            self.logger.warning(f"{self.filename}: {error}, value left empty")
        self.malformed_fields.extend(malformed)

    def read_header(self):
        with open(self.filename, "rb") as fid:
            file_size = get_file_size(fid)
            if file_size < HEADER_OFFSET:
                raise TruncatedHeaderError(self.filename, HEADER_OFFSET, file_size)
            values, malformed = HEADER_FIELDS.read(fid)

        for name in HEADER_FIELDS.names:
            setattr(self, name, values[name][0])
        self._check_malformed(malformed, required_header_fields)
        if self.number_of_signals < 0:
            raise MalformedFieldError("number_of_signals", str(self.number_of_signals))

    def create_signals(self):
        while len(self._signals) < self.ns:
            self._signals.append(Signal())

    def read_signal_header(self):
        ns = self.ns
        expected_size = header_byte_size(ns)
        with open(self.filename, "rb") as fid:
            file_size = get_file_size(fid)
            if file_size < expected_size:
                raise TruncatedHeaderError(self.filename, expected_size, file_size)
            values, malformed = SIGNAL_FIELDS.read(fid, base_offset=HEADER_OFFSET, count=ns)

        self.create_signals()
        for name in SIGNAL_FIELDS.names:
            for signal, value in zip(self._signals, values[name]):
                setattr(signal, name, value)
        self._check_malformed(malformed, required_signal_fields)

    def reset_signals(self):
        """Drop the signals and their samples, then decode the signal header again."""
        self._signals = SignalList()
        self.read_signal_header()

    # dates

    @property
    def start_date(self):
        return parse_date(self.start_date_of_recording)

    @property
    def start_time(self):
        return parse_time(self.start_time_of_recording)

    @property
    def start_datetime(self):
        date, time = self.start_date, self.start_time
        if date is None or time is None:
            return None
        return datetime.datetime.combine(date, time)

    # sizes

    @property
    def size_of_header(self):
        return header_byte_size(self.ns)

    @property
    def expected_size_of_header(self):
        return self.number_of_bytes_in_header

    @property
    def edf_size(self):
        """Total file size in bytes."""
        return os.path.getsize(self.filename)

    @property
    def data_size(self):
        """Size in bytes of the data section present in the file."""
        return max(0, self.edf_size - self.size_of_header)

    @property
    def expected_data_size(self):
        spr = sum(int(s.samples_per_data_record or 0) for s in self._signals)
        return spr * (self.number_of_data_records or 0) * SIZE_OF_SAMPLE_IN_BYTES

    @property
    def expected_edf_size(self):
        return self.expected_data_size + self.size_of_header

    # sample loading

    def _read_records(self, first_record, record_count=None, pad=False):
        """
        Record matrix of `record_count` records from `first_record` (every
        available record when None) and the number of missing records.
        Missing records are an error unless `pad` is set.
        """
        layout = self.layout
        with open(self.filename, "rb") as fid:
            available = layout.record_count_for_size(get_file_size(fid))
            if record_count is None:
                record_count = max(0, available - first_record)
            if record_count == 0:
                return layout.decode_records(b""), 0
            if first_record >= available:
                raise RecordsUnavailableError(first_record, record_count, available)
            n_read = min(record_count, available - first_record)
            if n_read < record_count and not pad:
                raise RecordsUnavailableError(first_record, record_count, available)
            raw = read_byte_range(fid, layout.record_byte_offset(first_record), n_read * layout.bytes_per_data_record)

        self.logger.debug(f"{self.filename}: read data records {first_record}..{first_record + n_read - 1}")
        return layout.decode_records(raw), record_count - n_read

    def _load_signal_data(self, matrix, missing_records=0):
        for signal, values in zip(self._signals, self.layout.split_record_matrix(matrix)):
            signal.append_digital_values(np.asarray(values, dtype="int64"))
            if missing_records:
                n = missing_records * signal.samples_per_data_record
                signal.append_digital_values(
                    np.ma.MaskedArray(np.zeros(n, dtype="int64"), mask=np.ones(n, dtype=bool))
                )

    def calculate_physical_values(self):
        for signal in self._signals:
            signal.calculate_physical_values()

    def load_digital_signals(self, preview_mode=False, preview_count=1):
        if preview_mode:
            matrix, missing = self._read_records(0, preview_count)
        else:
            count = self.number_of_data_records
            if count is not None and count < 0:
                count = None
            matrix, missing = self._read_records(0, count)
        self._load_signal_data(matrix, missing)

    def load_signals(self):
        """Load every data record into the signal buffers."""
        self.load_digital_signals()
        self.calculate_physical_values()

    def load_signal_preview(self, count=1):
        """Load the first `count` data records, just the first one by default."""
        self.load_digital_signals(preview_mode=True, preview_count=count)
        self.calculate_physical_values()

    def load_digital_signals_by_epoch(self, epoch_number, epoch_size, normalize_duration=False):
        first_record, record_count = self.layout.epoch_to_data_record_range(
            epoch_number, epoch_size, normalize_duration=normalize_duration
        )
        matrix, missing = self._read_records(first_record, record_count, pad=True)
        self._load_signal_data(matrix, missing)

    def load_epoch(self, epoch_number, epoch_size, normalize_duration=False):
        """
        Load the data records of one epoch.

        `epoch_number` is zero based and `epoch_size` is in seconds, not in
        data records. Records past the end of the file are loaded as absent
        samples. See layout.epoch_to_data_record_range for `normalize_duration`.
        """
        self.load_digital_signals_by_epoch(epoch_number, epoch_size, normalize_duration=normalize_duration)
        self.calculate_physical_values()

    def read_signal_record(self, record_index, signal_index):
        """
        Digital samples of one signal in one data record, read directly from
        the file without touching the buffers.
        """
        start, length = self.layout.sample_byte_range(record_index, signal_index)
        with open(self.filename, "rb") as fid:
            samples = read_samples(fid, start, length // SIZE_OF_SAMPLE_IN_BYTES)
        return samples.astype("int64")

    # writing

    def ensure_annotations_signal(self):
        if any(signal.is_annotation for signal in self._signals):
            return
        self._signals.append(Signal.create_annotations())
        self.number_of_signals = len(self._signals)

    def compute_number_of_data_records(self):
        counts = [
            record_count_for_samples(signal.sample_count, signal.samples_per_data_record)
            for signal in self._signals
            if signal.samples_per_data_record
        ]
        return max(counts) if counts else 0

    def write(self, output_path=None, is_continuous=True, batch_size=DEFAULT_BATCH_SIZE):
        """
        Write the file to `output_path` (or to the file it was read from).

        The number of signals, the header size and the EDF+C/EDF+D marker are
        recomputed, an annotations signal is added when missing and the number
        of data records is derived from the longest signal when it is 0.
        Signals with fewer samples than the data records hold are zero padded.
        """
        target_path = output_path if output_path is not None else self.filename
        if target_path is None:
            raise NoDestinationError("No output path specified")
        self.filename = os.fspath(target_path)

        self.number_of_signals = len(self._signals)
        self.ensure_annotations_signal()
        self.number_of_bytes_in_header = header_byte_size(len(self._signals))
        self.reserved = f"EDF+{'C' if is_continuous else 'D'}".ljust(RESERVED_SIZE)
        if not self.number_of_data_records and len(self._signals):
            self.number_of_data_records = self.compute_number_of_data_records()

        writer = StreamingWriter(
            self._signals,
            self.number_of_data_records,
            record_duration=self.duration_of_a_data_record,
            batch_size=batch_size,
        )
        with open(self.filename, "wb") as fid:
            HEADER_FIELDS.write(fid, [self])
            SIGNAL_FIELDS.write(fid, self._signals)
            writer.write(fid)

        self.logger.debug(
            f"Wrote {self.filename}: {len(self._signals)} signals, {self.number_of_data_records} data records"
        )
        self.is_new_file = False

    def update_header_field(self, name, value):
        """
        Set a main header field and rewrite only its bytes in the file.
        Returns False when `name` is not a header field.
        """
        if name not in HEADER_FIELDS:
            return False
        if self.filename is None:
            raise NoDestinationError(f"No file to update '{name}' in")

        with open(self.filename, "r+b") as fid:
            offset = HEADER_FIELDS.patch(fid, name, value)
        setattr(self, name, HEADER_FIELDS.coerce(name, value))
        self.logger.debug(f"{self.filename}: patched '{name}' at offset {offset}")
        return True

    def update(self, fields=None, **kwargs):
        """
        Update several header fields in place, returns {name: updated}.
        """
        fields = dict(fields or {}, **kwargs)
        return {name: self.update_header_field(name, value) for name, value in fields.items()}

    # description

    def _section_units(self, field):
        if not field.units:
            return ""
        value = getattr(self, field.name)
        return f" {field.units}" + ("" if value == 1 else "s")

    def summary(self):
        """Text description of the header and of every signal."""
        lines = [f"EDF                            : {self.filename}"]
        if self.filename is not None and os.path.isfile(self.filename):
            lines.append(f"Total File Size                : {self.edf_size} bytes")
        lines.append("")
        lines.append("Header Information")
        for field in HEADER_FIELDS:
            description = f" {field.description}" if field.description else ""
            lines.append(
                f"{field.title:<31}: {getattr(self, field.name)}{self._section_units(field)}{description}"
            )
        lines.append("")
        lines.append("Signal Information")
        for position, signal in enumerate(self._signals, start=1):
            lines.append("")
            lines.append(f"  {'Position':<29}: {position}")
            for field in SIGNAL_FIELDS:
                lines.append(f"  {field.title:<29}: {getattr(signal, field.name)}")
        lines.append("")
        lines.append("General Information")
        lines.append(f"Size of Header (bytes)         : {self.size_of_header}")
        lines.append(f"Expected Size of Header (bytes): {self.expected_size_of_header}")
        lines.append(f"Expected Size of Data   (bytes): {self.expected_data_size}")
        lines.append(f"Expected Total Size     (bytes): {self.expected_edf_size}")
        return "\n".join(lines)

    def __repr__(self):
        txt = f"{self.__class__.__name__}: {self.source_name()}\n"
        txt += f"nb_signal: {len(self._signals)}\n"
        txt += f"nb_data_record: {self.number_of_data_records}\n"
        txt += f"signals: {self._signals.labels}\n"
        return txt
