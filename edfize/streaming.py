"""
Incremental writing of data records.

The writer walks the data section a chunk of whole data records at a time.
For every chunk it asks each signal's source for exactly
`records * samples_per_data_record` digital samples, interleaves them into a
(records, samples) int16 matrix and writes that matrix. Only the current chunk
and at most one pending batch per value stream are held in memory.

Sources:
  * BufferSource: the signal's materialized digital buffer
  * StreamSource: a caller supplied ValueStream of physical values, converted
    to digital values batch by batch
  * AnnotationSource: EDF+ time-keeping annotations, one per data record

Padding policy: once a source is exhausted, every remaining sample of the
declared record count is written as digital 0. Absent (masked) samples are
written as digital 0 as well.
"""

import logging

import numpy as np

from .layout import SAMPLE_DTYPE, record_count_for_samples, record_offsets
from .scaling import SampleScaler

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100000

INT16_MIN = -32768
INT16_MAX = 32767


class ValueStream:
    """
    Lazy source of physical values.

    Parameters
    ----------
    total_samples: int
        number of samples the stream will provide, known in advance
    batch_size: int
        preferred number of samples per request
    next_batch: callable
        next_batch(n) returns up to n physical values, fewer means exhausted
    """

    def __init__(self, total_samples, batch_size, next_batch):
        if total_samples < 0:
            raise ValueError("total_samples must be positive")
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.total_samples = int(total_samples)
        self.batch_size = int(batch_size)
        self.next_batch = next_batch

    def record_count(self, samples_per_data_record):
        return record_count_for_samples(self.total_samples, samples_per_data_record)


class BufferSource:
    def __init__(self, digital_values):
        self.values = np.ma.filled(digital_values, 0)
        self.position = 0

    @property
    def exhausted(self):
        return self.position >= self.values.size

    def take(self, n):
        out = np.zeros(n, dtype="int64")
        chunk = self.values[self.position:self.position + n]
        out[:chunk.size] = chunk
        self.position += chunk.size
        return out


class StreamSource:
    def __init__(self, stream, scaler):
        self.stream = stream
        self.scaler = scaler
        self.pulled = 0
        self.exhausted = stream.total_samples == 0
        self._pending = np.zeros(0, dtype="int64")

    def _pull(self, request):
        remaining = self.stream.total_samples - self.pulled
        request = min(request, remaining)
        batch = self.stream.next_batch(request)
        batch = list(batch) if batch is not None else []
        if len(batch) > remaining:
            batch = batch[:remaining]
        self.pulled += len(batch)
        if len(batch) < request:
            logger.debug(f"Value stream exhausted after {self.pulled} of {self.stream.total_samples} samples")
            self.exhausted = True
        if self.pulled >= self.stream.total_samples:
            self.exhausted = True
        if batch:
            digital = self.scaler.to_digital(batch).filled(0)
            self._pending = np.concatenate([self._pending, digital])

    def take(self, n):
        out = np.zeros(n, dtype="int64")
        filled = 0
        while filled < n:
            if self._pending.size == 0:
                if self.exhausted:
                    break
                self._pull(n - filled)
                continue
            count = min(n - filled, self._pending.size)
            out[filled:filled + count] = self._pending[:count]
            self._pending = self._pending[count:]
            filled += count
        return out


def format_onset(seconds):
    if float(seconds).is_integer():
        return f"+{int(seconds)}"
    return f"+{seconds}"


class AnnotationSource:
    """
    Time-keeping annotation of each data record: `+<onset>\\x14\\x14\\x00`,
    zero padded to the size of the annotations signal in one record.
    """

    def __init__(self, samples_per_data_record, record_duration=1):
        self.samples_per_data_record = samples_per_data_record
        self.record_duration = record_duration or 0
        self.record_index = 0
        self.exhausted = False

    def record_bytes(self, record_index):
        size = self.samples_per_data_record * SAMPLE_DTYPE.itemsize
        text = (format_onset(record_index * self.record_duration) + "\x14\x14\x00").encode("ascii")
        return text[:size].ljust(size, b"\x00")

    def take(self, n):
        n_records = n // self.samples_per_data_record
        raw = b"".join(self.record_bytes(self.record_index + i) for i in range(n_records))
        self.record_index += n_records
        out = np.zeros(n, dtype="int64")
        values = np.frombuffer(raw, dtype=SAMPLE_DTYPE)
        out[:values.size] = values
        return out


def source_for_signal(signal, record_duration=1):
    if signal.value_stream is not None:
        return StreamSource(signal.value_stream, SampleScaler.from_signal(signal))
    if signal.digital_values.size:
        return BufferSource(signal.digital_values)
    if signal.physical_values.size:
        return BufferSource(signal.convert_to_digital(signal.physical_values))
    if signal.is_annotation:
        return AnnotationSource(signal.samples_per_data_record, record_duration)
    return BufferSource(np.zeros(0, dtype="int64"))


class StreamingWriter:
    """
    Write the data records of a list of signals.

    Parameters
    ----------
    signals: sequence of Signal
        in declared order
    number_of_data_records: int
        records to write, sources running short are zero padded
    record_duration: int or float
        seconds per data record, used for time-keeping annotations
    batch_size: int
        number of samples per chunk, value streams with a smaller batch size
        shrink the chunk
    """

    def __init__(self, signals, number_of_data_records, record_duration=1, batch_size=DEFAULT_BATCH_SIZE):
        self.signals = list(signals)
        self.number_of_data_records = int(number_of_data_records)
        self.record_duration = record_duration
        self.batch_size = batch_size
        self.samples_per_record = [int(s.samples_per_data_record or 0) for s in self.signals]
        for signal, n in zip(self.signals, self.samples_per_record):
            if n < 1:
                label = str(signal.label).strip()
                raise ValueError(f"Signal {label!r} needs at least 1 sample per data record, got {n}")

    @property
    def records_per_chunk(self):
        total = sum(self.samples_per_record)
        if total == 0:
            return max(1, self.number_of_data_records)
        records = max(1, self.batch_size // total)
        for signal, n in zip(self.signals, self.samples_per_record):
            if signal.value_stream is not None:
                records = min(records, max(1, signal.value_stream.batch_size // n))
        return records

    def iter_chunks(self):
        """
        Yield the (records, samples) int16 matrices of successive chunks.
        """
        sources = [source_for_signal(s, self.record_duration) for s in self.signals]
        offsets = record_offsets(self.samples_per_record)
        total = sum(self.samples_per_record)
        chunk = self.records_per_chunk
        for first in range(0, self.number_of_data_records, chunk):
            n_records = min(chunk, self.number_of_data_records - first)
            block = np.empty((n_records, total), dtype=SAMPLE_DTYPE)
            for source, offset, n in zip(sources, offsets, self.samples_per_record):
                values = source.take(n_records * n)
                values = np.clip(values, INT16_MIN, INT16_MAX)
                block[:, offset:offset + n] = values.reshape(n_records, n)
            yield block

    def write(self, fid):
        """Write every data record at the current position, returns bytes written."""
        written = 0
        for block in self.iter_chunks():
            data = block.tobytes()
            fid.write(data)
            written += len(data)
        logger.debug(
            f"Wrote {self.number_of_data_records} data records ({written} bytes) "
            f"in chunks of {self.records_per_chunk} records"
        )
        return written
