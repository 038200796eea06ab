"""
Self-checks of an EDF file.

Each check takes an Edf and returns a CheckResult with a pass/fail flag and
the expected and actual values, so a caller can report failures without
knowing anything about the check.
"""

import logging
from collections import namedtuple

from .fields import RESERVED_SIZE

logger = logging.getLogger(__name__)

CheckResult = namedtuple("CheckResult", ["name", "passes", "expected", "actual"])


def check_expected_length(edf):
    """File size equals the header plus the declared data records."""
    return CheckResult("Expected Length Check", edf.edf_size == edf.expected_edf_size, edf.expected_edf_size, edf.edf_size)


def check_reserved_area_blank(edf):
    """Main reserved field is blank, or holds an EDF+ marker."""
    reserved = str(edf.reserved or "")
    passes = reserved.strip() == "" or reserved.strip() in ("EDF+C", "EDF+D")
    return CheckResult("Reserved Area Check", passes, " " * RESERVED_SIZE, reserved)


def check_valid_date(edf):
    """Start date of the recording is a real date."""
    return CheckResult("Valid Date Check", edf.start_date is not None, "dd.mm.yy", edf.start_date_of_recording)


def check_reserved_signal_areas_blank(edf):
    reserved_areas = [str(s.reserved_area or "") for s in edf.signals]
    passes = all(r.strip() == "" for r in reserved_areas)
    return CheckResult("Signal Reserved Area Blank", passes, [""] * len(reserved_areas), reserved_areas)


checks = {
    "expected_length": check_expected_length,
    "reserved_area_blank": check_reserved_area_blank,
    "valid_date": check_valid_date,
    "reserved_signal_areas_blank": check_reserved_signal_areas_blank,
}

DEFAULT_CHECKS = ("expected_length", "reserved_area_blank", "valid_date")


def run_checks(edf, names=DEFAULT_CHECKS):
    """
    Run the named checks, failures are logged as warnings.
    """
    results = []
    for name in names:
        result = checks[name](edf)
        if not result.passes:
            logger.warning(
                f"{edf.filename}: {result.name} failed, expected {result.expected!r}, actual {result.actual!r}"
            )
        results.append(result)
    return results
