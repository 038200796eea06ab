"""
Signal descriptors and the ordered signal collection of an EDF file.

A Signal carries the ten fields of its signal header and two sample buffers:

  * `digital_values`: the integers stored on disk
  * `physical_values`: the same samples in physical units

Both are numpy masked arrays, a masked element is an absent sample (padding
past the end of the file, or a sample whose scale is undefined).
"""

import logging

import numpy as np
import quantities as pq

from .fields import SIGNAL_FIELDS
from .scaling import SampleScaler, as_masked
from .streaming import ValueStream

logger = logging.getLogger(__name__)

ANNOTATIONS_LABEL = "EDF Annotations"
ANNOTATION_SAMPLES_PER_RECORD = 60

unit_convert = {
    "Volts": "V",
    "volts": "V",
    "Volt": "V",
    "volt": "V",
    "microV": "uV",
    # "micro" and "mu" are two different characters in Unicode
    "µV": "uV",
    "μV": "uV",
    "%": "percent",
}


def ensure_signal_units(units):
    """
    quantities unit of a physical dimension string, dimensionless when the
    string is blank or not understood.
    """
    units = units.replace(" ", "")
    if units in unit_convert:
        units = unit_convert[units]
    try:
        return pq.Quantity(1, units)
    except (LookupError, NameError, SyntaxError, TypeError, ValueError):
        logger.warning(f'Units "{units}" can not be converted to a quantity. Using dimensionless instead')
        return pq.Quantity(1, "")


def _empty(dtype):
    return np.ma.MaskedArray(np.zeros(0, dtype=dtype), mask=np.zeros(0, dtype=bool))


class Signal:
    """
    One channel of an EDF file: header fields and sample buffers.

    Usage:
        >>> signal = Signal.create(label="ECG", physical_dimension="mV",
        ...                        physical_minimum=-100.0, physical_maximum=100.0,
        ...                        digital_minimum=-32768, digital_maximum=32767,
        ...                        samples_per_data_record=256)
        >>> signal.digital_values = signal.convert_to_digital(values)
    """

    def __init__(
        self,
        label="",
        transducer_type="",
        physical_dimension="",
        physical_minimum=None,
        physical_maximum=None,
        digital_minimum=None,
        digital_maximum=None,
        prefiltering="",
        samples_per_data_record=None,
        reserved_area=" " * SIGNAL_FIELDS.size("reserved_area"),
    ):
        self.label = label
        self.transducer_type = transducer_type
        self.physical_dimension = physical_dimension
        self.physical_minimum = physical_minimum
        self.physical_maximum = physical_maximum
        self.digital_minimum = digital_minimum
        self.digital_maximum = digital_maximum
        self.prefiltering = prefiltering
        self.samples_per_data_record = samples_per_data_record
        self.reserved_area = reserved_area

        self._digital_values = _empty("int64")
        self._physical_values = _empty("float64")
        self.value_stream = None

    @classmethod
    def create(cls, **attributes):
        return cls(**attributes)

    @classmethod
    def create_annotations(cls):
        """The EDF+ annotations signal used for time-keeping."""
        return cls(
            label=ANNOTATIONS_LABEL,
            physical_minimum=-1,
            physical_maximum=1,
            digital_minimum=-32768,
            digital_maximum=32767,
            samples_per_data_record=ANNOTATION_SAMPLES_PER_RECORD,
        )

    @property
    def is_annotation(self):
        return str(self.label).strip() == ANNOTATIONS_LABEL

    @property
    def digital_values(self):
        return self._digital_values

    @digital_values.setter
    def digital_values(self, values):
        self._digital_values = as_masked(values, "int64")

    @property
    def physical_values(self):
        return self._physical_values

    @physical_values.setter
    def physical_values(self, values):
        self._physical_values = as_masked(values, "float64")

    @property
    def samples(self):
        return self._physical_values

    @property
    def scaler(self):
        return SampleScaler.from_signal(self)

    @property
    def sample_count(self):
        """Number of samples this signal will write."""
        if self.value_stream is not None:
            return self.value_stream.total_samples
        if self._digital_values.size:
            return self._digital_values.size
        return self._physical_values.size

    def append_digital_values(self, values):
        values = as_masked(values, "int64")
        self._digital_values = np.ma.concatenate([self._digital_values, values])

    def reset_values(self):
        self._digital_values = _empty("int64")
        self._physical_values = _empty("float64")

    def calculate_physical_values(self):
        """
        Recompute the physical buffer from the whole digital buffer.
        """
        if self._digital_values.size == 0:
            return
        self._physical_values = self.scaler.to_physical(self._digital_values)

    def convert_to_digital(self, physical_batch):
        return self.scaler.to_digital(physical_batch)

    def load_preview(self, count=5):
        """First `count` physical values, computed if not done yet."""
        if self._digital_values.size == 0:
            return self._physical_values[:0]
        if self._physical_values.size == 0:
            self.calculate_physical_values()
        return self._physical_values[:count]

    def stream_values(self, total_samples, batch_size, next_batch):
        """
        Write this signal from a value source rather than from its buffers.

        `next_batch(n)` must return up to `n` physical values, a shorter batch
        meaning the source is exhausted. Nothing is pulled before the file is
        written.
        """
        self.value_stream = ValueStream(total_samples, batch_size, next_batch)
        return self.value_stream

    @property
    def units(self):
        return ensure_signal_units(str(self.physical_dimension))

    def as_quantity(self):
        """Physical values as a quantities array, absent samples are nan."""
        return self._physical_values.filled(np.nan) * self.units

    def header_dict(self):
        return {name: getattr(self, name) for name in SIGNAL_FIELDS.names}

    def __repr__(self):
        return f"<Signal {str(self.label).strip()!r}: {self.samples_per_data_record} samples/record>"


class SignalList:
    """
    Ordered collection of signals with lookup by position or by label.

    Labels are compared stripped and case-insensitively, the label field of
    the file is space padded.
    """

    def __init__(self, signals=None):
        self._signals = list(signals) if signals is not None else []

    def __len__(self):
        return len(self._signals)

    def __iter__(self):
        return iter(self._signals)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return SignalList(self._signals[index])
        return self._signals[index]

    def __contains__(self, item):
        if isinstance(item, Signal):
            return item in self._signals
        return self.find_by_label(item) is not None

    def __eq__(self, other):
        if isinstance(other, SignalList):
            return self._signals == other._signals
        return self._signals == list(other)

    def __repr__(self):
        return f"SignalList({self._signals!r})"

    @staticmethod
    def _normalize(label):
        return str(label).strip().casefold()

    @property
    def labels(self):
        return [str(s.label).strip() for s in self._signals]

    @property
    def first(self):
        return self._signals[0] if self._signals else None

    def append(self, signal):
        self._signals.append(signal)

    def extend(self, signals):
        self._signals.extend(signals)

    def index(self, signal):
        return self._signals.index(signal)

    def find_by_label(self, label):
        wanted = self._normalize(label)
        for signal in self._signals:
            if self._normalize(signal.label) == wanted:
                return signal
        return None

    def find(self, key):
        """Signal at a position (int) or with a label (anything else), or None."""
        if isinstance(key, (int, np.integer)):
            try:
                return self._signals[key]
            except IndexError:
                return None
        return self.find_by_label(key)

    def remove(self, key):
        """
        Remove the signal at a position, with a label, or the signal itself.
        Returns True when a signal was removed.
        """
        if isinstance(key, Signal):
            signal = key if key in self._signals else None
        else:
            signal = self.find(key)
        if signal is None:
            return False
        self._signals.remove(signal)
        return True

    def delete(self, label):
        return self.remove(label)

    def clear(self):
        self._signals.clear()
