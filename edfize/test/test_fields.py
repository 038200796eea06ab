"""
Tests of edfize.fields
"""

import io
import unittest

from edfize.exceptions import MalformedFieldError
from edfize.fields import (
    FieldTable,
    HEADER_FIELDS,
    HEADER_OFFSET,
    SIGNAL_FIELDS,
    SIGNAL_HEADER_SIZE,
    format_value,
)


class TestHeaderFieldOffsets(unittest.TestCase):
    def test_offsets_are_cumulative_sizes(self):
        sizes = HEADER_FIELDS.sizes
        self.assertEqual(sizes, [8, 80, 80, 8, 8, 8, 44, 8, 8, 4])
        for i, name in enumerate(HEADER_FIELDS.names):
            self.assertEqual(HEADER_FIELDS.offset(name), sum(sizes[:i]))

    def test_standard_header_offsets(self):
        expected = {
            "version": 0,
            "local_patient_identification": 8,
            "local_recording_identification": 88,
            "start_date_of_recording": 168,
            "start_time_of_recording": 176,
            "number_of_bytes_in_header": 184,
            "reserved": 192,
            "number_of_data_records": 236,
            "duration_of_a_data_record": 244,
            "number_of_signals": 252,
        }
        for name, offset in expected.items():
            self.assertEqual(HEADER_FIELDS.offset(name), offset, name)
        self.assertEqual(HEADER_OFFSET, 256)

    def test_signal_field_offsets(self):
        expected = {
            "label": 0,
            "transducer_type": 16,
            "physical_dimension": 96,
            "physical_minimum": 104,
            "physical_maximum": 112,
            "digital_minimum": 120,
            "digital_maximum": 128,
            "prefiltering": 136,
            "samples_per_data_record": 216,
            "reserved_area": 224,
        }
        for name, offset in expected.items():
            self.assertEqual(SIGNAL_FIELDS.offset(name), offset, name)
        self.assertEqual(SIGNAL_HEADER_SIZE, 256)

    def test_field_major_entry_offset(self):
        # 14 signals: all labels first, then all transducer types
        self.assertEqual(SIGNAL_FIELDS.entry_offset("label", index=3, count=14, base_offset=256), 256 + 3 * 16)
        self.assertEqual(
            SIGNAL_FIELDS.entry_offset("transducer_type", index=0, count=14, base_offset=256), 256 + 14 * 16
        )
        with self.assertRaises(IndexError):
            SIGNAL_FIELDS.entry_offset("label", index=14, count=14)


class TestDecodeEncode(unittest.TestCase):
    def setUp(self):
        self.table = FieldTable(
            [
                ("name", 8, "str", "Name"),
                ("count", 4, "int", "Count"),
                ("value", 8, "float", "Value"),
                ("blob", 6, "raw", "Blob"),
            ]
        )

    def test_decode_rules(self):
        self.assertEqual(self.table.decode("name", b"ECG     "), "ECG")
        self.assertEqual(self.table.decode("count", b"12  "), 12)
        self.assertEqual(self.table.decode("count", b"1.0 "), 1)
        self.assertEqual(self.table.decode("value", b"-1.25   "), -1.25)
        self.assertEqual(self.table.decode("blob", b"ab    "), "ab    ")

    def test_malformed_numeric_content(self):
        with self.assertRaises(MalformedFieldError) as cm:
            self.table.decode("count", b"ab  ")
        self.assertEqual(cm.exception.name, "count")
        self.assertEqual(cm.exception.raw, "ab  ")
        with self.assertRaises(ValueError):
            self.table.decode("value", b"        ")

    def test_encode_left_justifies_and_truncates(self):
        self.assertEqual(self.table.encode("name", "ECG"), b"ECG     ")
        self.assertEqual(self.table.encode("name", "A very long label"), b"A very l")
        self.assertEqual(self.table.encode("count", 7), b"7   ")
        self.assertEqual(self.table.encode("name", None), b"        ")

    def test_numeric_values_take_the_decoded_type(self):
        self.assertEqual(self.table.encode("value", -500), b"-500.0  ")
        self.assertEqual(self.table.encode("count", 7.0), b"7   ")
        self.assertEqual(self.table.encode("count", "12"), b"12  ")
        self.assertEqual(self.table.encode("name", 5), b"5       ")
        for value in (-500, 3, 0):
            encoded = self.table.encode("value", value)
            self.assertEqual(self.table.encode("value", self.table.decode("value", encoded)), encoded)
        with self.assertRaises(MalformedFieldError):
            self.table.encode("count", "many")

    def test_float_shortened_to_fit(self):
        self.assertEqual(format_value(-100.0, 8), "-100.0")
        text = format_value(0.123456789, 8)
        self.assertLessEqual(len(text), 8)
        self.assertAlmostEqual(float(text), 0.123456789, places=5)
        self.assertEqual(self.table.encode("value", 3276.75), b"3276.75 ")

    def test_read_single_record(self):
        raw = b"ECG     " + b"42  " + b"0.5     " + b"xy    "
        values, malformed = self.table.read(io.BytesIO(raw))
        self.assertEqual(values, {"name": ["ECG"], "count": [42], "value": [0.5], "blob": ["xy    "]})
        self.assertEqual(malformed, [])

    def test_read_reports_malformed_without_raising(self):
        raw = b"ECG     " + b"??  " + b"0.5     " + b"xy    "
        values, malformed = self.table.read(io.BytesIO(raw))
        self.assertIsNone(values["count"][0])
        self.assertEqual(len(malformed), 1)
        self.assertEqual(malformed[0].name, "count")
        self.assertEqual(malformed[0].index, 0)

    def test_field_major_pack_and_read(self):
        rows = [
            {"name": "a", "count": 1, "value": 1.5, "blob": ""},
            {"name": "b", "count": 2, "value": -2.5, "blob": "z"},
        ]
        raw = self.table.pack(rows)
        self.assertEqual(len(raw), 2 * self.table.total_size)
        # names of both rows come first
        self.assertEqual(raw[:16], b"a       b       ")
        values, malformed = self.table.read(io.BytesIO(raw), count=2)
        self.assertEqual(values["name"], ["a", "b"])
        self.assertEqual(values["count"], [1, 2])
        self.assertEqual(values["value"], [1.5, -2.5])
        self.assertEqual(malformed, [])

    def test_pack_reads_attributes(self):
        class Row:
            name = "obj"
            count = 3
            value = 0.0
            blob = "q"

        raw = self.table.pack([Row()])
        self.assertEqual(raw, b"obj     3   0.0     q     ")

    def test_patch_touches_one_entry(self):
        rows = [{"name": "a", "count": 1, "value": 1.0, "blob": ""}, {"name": "b", "count": 2, "value": 2.0, "blob": ""}]
        original = self.table.pack(rows)
        fid = io.BytesIO(original)
        offset = self.table.patch(fid, "count", 99, index=1, count=2, base_offset=0)
        self.assertEqual(offset, 16 + 4)
        patched = fid.getvalue()
        self.assertEqual(patched[20:24], b"99  ")
        self.assertEqual(patched[:20], original[:20])
        self.assertEqual(patched[24:], original[24:])

    def test_unknown_decode_rule(self):
        with self.assertRaises(ValueError):
            FieldTable([("x", 4, "date", "X")])


if __name__ == "__main__":
    unittest.main()
