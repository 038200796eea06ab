"""
edfize is a package for reading, building and writing EDF and EDF+ files,
with partial (epoch) reads and streamed writes of large recordings.
"""
import importlib.metadata

# this need to be at the begining because some sub module will need the version
__version__ = importlib.metadata.version("edfize")

import logging

logging_handler = logging.StreamHandler()

from edfize.exceptions import (
    EdfError,
    MalformedFieldError,
    NoDestinationError,
    RecordsUnavailableError,
    ShortReadError,
    TruncatedHeaderError,
    UndefinedScaleError,
)
from edfize.fields import FieldTable, HEADER_FIELDS, SIGNAL_FIELDS
from edfize.scaling import SampleScaler, digital_to_physical, physical_to_digital
from edfize.layout import RecordLayout
from edfize.signal import ANNOTATIONS_LABEL, Signal, SignalList
from edfize.streaming import StreamingWriter, ValueStream
from edfize.edf import Edf
from edfize.checks import run_checks

# `open` is left out so a star import does not shadow the builtin
__all__ = [
    "EdfError",
    "MalformedFieldError",
    "NoDestinationError",
    "RecordsUnavailableError",
    "ShortReadError",
    "TruncatedHeaderError",
    "UndefinedScaleError",
    "FieldTable",
    "HEADER_FIELDS",
    "SIGNAL_FIELDS",
    "SampleScaler",
    "digital_to_physical",
    "physical_to_digital",
    "RecordLayout",
    "ANNOTATIONS_LABEL",
    "Signal",
    "SignalList",
    "StreamingWriter",
    "ValueStream",
    "Edf",
    "run_checks",
    "create",
]


def open(filename):
    """
    Open an existing EDF file, only the headers are read.
    """
    return Edf(filename)


def create(filename=None, **header):
    """
    New empty EDF file, header fields as keyword arguments.
    """
    return Edf.create(filename, **header)
