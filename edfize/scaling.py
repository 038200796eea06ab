"""
Linear scaling between digital and physical sample values.

    physical = (digital - digital_minimum) * (physical_maximum - physical_minimum)
               / (digital_maximum - digital_minimum) + physical_minimum

The inverse is rounded half away from zero, so 2.5 -> 3 and -2.5 -> -3
whatever the platform rounding mode, and clipped to the digital range.

A range with no span makes the transform undefined. The array functions do
not raise in that case: every sample of the result is masked (absent) and a
warning is logged. `check_scale` gives the strict behaviour.
"""

import logging

import numpy as np

from .exceptions import UndefinedScaleError

logger = logging.getLogger(__name__)


def check_scale(digital_minimum, digital_maximum, physical_minimum, physical_maximum):
    """
    Raise UndefinedScaleError unless both ranges are known and have a span.
    """
    limits = (digital_minimum, digital_maximum, physical_minimum, physical_maximum)
    if any(v is None for v in limits):
        raise UndefinedScaleError(*limits)
    if digital_maximum == digital_minimum or physical_maximum == physical_minimum:
        raise UndefinedScaleError(*limits)


def round_half_away_from_zero(values):
    values = np.asarray(values, dtype="float64")
    return np.where(values >= 0, np.floor(values + 0.5), np.ceil(values - 0.5))


def as_masked(values, dtype):
    """
    Masked array from an array, a masked array or a sequence holding None for
    absent samples.
    """
    if isinstance(values, np.ma.MaskedArray):
        return values.astype(dtype)
    if isinstance(values, np.ndarray):
        return np.ma.MaskedArray(values.astype(dtype, copy=False), mask=np.zeros(values.shape, dtype=bool))
    values = list(values)
    mask = np.array([v is None for v in values], dtype=bool)
    data = np.array([0 if v is None else v for v in values], dtype=dtype)
    return np.ma.MaskedArray(data, mask=mask)


def _all_absent(size, dtype):
    return np.ma.MaskedArray(np.zeros(size, dtype=dtype), mask=np.ones(size, dtype=bool))


def digital_to_physical(digital, digital_minimum, digital_maximum, physical_minimum, physical_maximum):
    """
    Physical values (masked float64) of digital samples, one per input sample.
    """
    digital = as_masked(digital, "int64")
    try:
        check_scale(digital_minimum, digital_maximum, physical_minimum, physical_maximum)
    except UndefinedScaleError as e:
        logger.warning(f"{e}, {digital.size} samples left absent")
        return _all_absent(digital.size, "float64")

    physical = (
        (digital.astype("float64") - digital_minimum) * (physical_maximum - physical_minimum)
        / (digital_maximum - digital_minimum)
        + physical_minimum
    )
    return np.ma.MaskedArray(physical.data, mask=np.ma.getmaskarray(digital).copy())


def physical_to_digital(physical, digital_minimum, digital_maximum, physical_minimum, physical_maximum):
    """
    Digital values (masked int64) of physical samples, one per input sample.
    """
    physical = as_masked(physical, "float64")
    try:
        check_scale(digital_minimum, digital_maximum, physical_minimum, physical_maximum)
    except UndefinedScaleError as e:
        logger.warning(f"{e}, {physical.size} samples left absent")
        return _all_absent(physical.size, "int64")

    mask = np.ma.getmaskarray(physical) | ~np.isfinite(physical.data)
    with np.errstate(invalid="ignore"):
        digital = (
            (physical.data - physical_minimum) * (digital_maximum - digital_minimum)
            / (physical_maximum - physical_minimum)
            + digital_minimum
        )
        digital = round_half_away_from_zero(digital)
    low, high = sorted((digital_minimum, digital_maximum))
    digital = np.clip(np.where(mask, 0, digital), low, high).astype("int64")
    return np.ma.MaskedArray(digital, mask=mask)


class SampleScaler:
    """
    The four limits of one channel, with both directions of the transform.
    """

    def __init__(self, digital_minimum, digital_maximum, physical_minimum, physical_maximum):
        self.digital_minimum = digital_minimum
        self.digital_maximum = digital_maximum
        self.physical_minimum = physical_minimum
        self.physical_maximum = physical_maximum

    @classmethod
    def from_signal(cls, signal):
        return cls(signal.digital_minimum, signal.digital_maximum, signal.physical_minimum, signal.physical_maximum)

    @property
    def limits(self):
        return (self.digital_minimum, self.digital_maximum, self.physical_minimum, self.physical_maximum)

    @property
    def is_defined(self):
        try:
            check_scale(*self.limits)
        except UndefinedScaleError:
            return False
        return True

    def to_physical(self, digital):
        return digital_to_physical(digital, *self.limits)

    def to_digital(self, physical):
        return physical_to_digital(physical, *self.limits)

    def __repr__(self):
        return (
            f"SampleScaler(digital=[{self.digital_minimum}, {self.digital_maximum}], "
            f"physical=[{self.physical_minimum}, {self.physical_maximum}])"
        )
