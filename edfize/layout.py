"""
Offset arithmetic of the data section.

The data section is a run of data records. Each record holds, for every
signal in declared order, `samples_per_data_record` samples of 2 bytes
(16-bit signed little-endian)::

    | header | rec 0: sig 0 | sig 1 | ... | rec 1: sig 0 | sig 1 | ... |

Everything here is a pure function of the list of samples per record (and the
record duration for epochs), so it can be tested without a file.
"""

import math

import numpy as np

from .fields import HEADER_OFFSET, SIGNAL_HEADER_SIZE

SIZE_OF_SAMPLE_IN_BYTES = 2
SAMPLE_DTYPE = np.dtype("<i2")


def header_byte_size(number_of_signals):
    return HEADER_OFFSET + number_of_signals * SIGNAL_HEADER_SIZE


def samples_per_record_total(samples_per_record):
    return int(sum(samples_per_record))


def bytes_per_data_record(samples_per_record):
    return samples_per_record_total(samples_per_record) * SIZE_OF_SAMPLE_IN_BYTES


def record_offsets(samples_per_record):
    """
    Sample offset of each signal inside one data record.
    """
    offsets = []
    offset = 0
    for n in samples_per_record:
        offsets.append(offset)
        offset += n
    return offsets


def sample_byte_range(samples_per_record, record_index, signal_index):
    """
    (start, length) in bytes of the samples of one signal in one data record.
    """
    start = (
        header_byte_size(len(samples_per_record))
        + record_index * bytes_per_data_record(samples_per_record)
        + record_offsets(samples_per_record)[signal_index] * SIZE_OF_SAMPLE_IN_BYTES
    )
    length = samples_per_record[signal_index] * SIZE_OF_SAMPLE_IN_BYTES
    return start, length


def epoch_to_data_record_range(epoch_index, epoch_size, record_duration, normalize_duration=False):
    """
    First data record and number of data records covering an epoch.

    By default `floor(epoch_size / record_duration) + 1` records are retrieved
    starting at record `epoch_index * epoch_size`, the extra record covers a
    partial tail lost to the integer division. The start ignores the record
    duration, which is only right for 1 second records; `normalize_duration`
    expresses both the start and the length in records of `record_duration`
    seconds instead.

    Without a usable record duration a single record is retrieved.
    """
    if normalize_duration and record_duration:
        first_record = (epoch_index * epoch_size) // record_duration
        record_count = max(1, math.ceil(epoch_size / record_duration))
        return int(first_record), int(record_count)

    if record_duration:
        records_to_retrieve = epoch_size // record_duration
    else:
        records_to_retrieve = 0
    return int(epoch_index * epoch_size), int(records_to_retrieve) + 1


def record_count_for_samples(sample_count, samples_per_data_record):
    return math.ceil(sample_count / samples_per_data_record)


def decode_records(raw, samples_per_record):
    """
    Interpret raw bytes of whole data records as a (records, samples) matrix.
    """
    total = samples_per_record_total(samples_per_record)
    if total == 0:
        return np.empty((0, 0), dtype=SAMPLE_DTYPE)
    data = np.frombuffer(raw[: len(raw) - len(raw) % SIZE_OF_SAMPLE_IN_BYTES], dtype=SAMPLE_DTYPE)
    n_records = data.size // total
    return data[: n_records * total].reshape(n_records, total)


def split_record_matrix(matrix, samples_per_record):
    """
    Samples of each signal, records concatenated, from a record matrix.
    """
    signals = []
    for offset, n in zip(record_offsets(samples_per_record), samples_per_record):
        signals.append(matrix[:, offset:offset + n].reshape(-1))
    return signals


class RecordLayout:
    """
    Layout of the data section for one list of signals.

    Parameters
    ----------
    samples_per_record: list of int
        samples per data record of each signal, in declared order
    record_duration: int or float
        duration of a data record in seconds
    """

    def __init__(self, samples_per_record, record_duration=1):
        self.samples_per_record = [int(n) for n in samples_per_record]
        self.record_duration = record_duration

    @classmethod
    def from_signals(cls, signals, record_duration=1):
        return cls([s.samples_per_data_record for s in signals], record_duration=record_duration)

    @property
    def number_of_signals(self):
        return len(self.samples_per_record)

    @property
    def header_byte_size(self):
        return header_byte_size(self.number_of_signals)

    @property
    def samples_per_record_total(self):
        return samples_per_record_total(self.samples_per_record)

    @property
    def bytes_per_data_record(self):
        return bytes_per_data_record(self.samples_per_record)

    @property
    def record_offsets(self):
        return record_offsets(self.samples_per_record)

    def record_byte_offset(self, record_index):
        return self.header_byte_size + record_index * self.bytes_per_data_record

    def sample_byte_range(self, record_index, signal_index):
        return sample_byte_range(self.samples_per_record, record_index, signal_index)

    def epoch_to_data_record_range(self, epoch_index, epoch_size, normalize_duration=False):
        return epoch_to_data_record_range(
            epoch_index, epoch_size, self.record_duration, normalize_duration=normalize_duration
        )

    def data_size(self, number_of_data_records):
        return number_of_data_records * self.bytes_per_data_record

    def record_count_for_size(self, file_size):
        """Number of whole data records present in a file of `file_size` bytes."""
        if self.bytes_per_data_record == 0:
            return 0
        return max(0, file_size - self.header_byte_size) // self.bytes_per_data_record

    def decode_records(self, raw):
        return decode_records(raw, self.samples_per_record)

    def split_record_matrix(self, matrix):
        return split_record_matrix(matrix, self.samples_per_record)
