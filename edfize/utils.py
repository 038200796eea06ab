import os

import numpy as np

from .exceptions import ShortReadError


def get_file_size(fid):
    """
    Size in bytes of an opened file, the position of the file is preserved.
    """
    position = fid.tell()
    fid.seek(0, os.SEEK_END)
    size = fid.tell()
    fid.seek(position)
    return size


def read_byte_range(fid, offset, length):
    """
    Read exactly `length` bytes at `offset` from an opened file.

    A range that crosses the end of the file raises ShortReadError, nothing
    is zero-filled.
    """
    fid.seek(offset)
    data = fid.read(length)
    if len(data) != length:
        raise ShortReadError(offset, length, len(data))
    return data


def read_samples(fid, offset, count, dtype="<i2"):
    """
    Read `count` samples of `dtype` at `offset` as a numpy array.
    """
    dtype = np.dtype(dtype)
    raw = read_byte_range(fid, offset, count * dtype.itemsize)
    return np.frombuffer(raw, dtype=dtype)
