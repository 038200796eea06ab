"""
Tests of edfize.layout
"""

import unittest

import numpy as np
from numpy.testing import assert_array_equal

from edfize.layout import (
    RecordLayout,
    bytes_per_data_record,
    decode_records,
    epoch_to_data_record_range,
    header_byte_size,
    record_count_for_samples,
    record_offsets,
    sample_byte_range,
    split_record_matrix,
)


class TestRecordArithmetic(unittest.TestCase):
    def test_sizes(self):
        self.assertEqual(header_byte_size(0), 256)
        self.assertEqual(header_byte_size(3), 1024)
        self.assertEqual(header_byte_size(14), 3840)
        self.assertEqual(bytes_per_data_record([1, 1, 2]), 8)
        self.assertEqual(record_offsets([1, 1, 2]), [0, 1, 2])
        self.assertEqual(record_offsets([125, 50, 10]), [0, 125, 175])

    def test_record_count_for_samples(self):
        self.assertEqual(record_count_for_samples(1000, 250), 4)
        self.assertEqual(record_count_for_samples(1001, 250), 5)
        self.assertEqual(record_count_for_samples(0, 250), 0)

    def test_sample_byte_range(self):
        spr = [1, 1, 2]
        self.assertEqual(sample_byte_range(spr, 0, 0), (1024, 2))
        self.assertEqual(sample_byte_range(spr, 0, 2), (1028, 4))
        self.assertEqual(sample_byte_range(spr, 2, 2), (1024 + 2 * 8 + 4, 4))
        self.assertEqual(sample_byte_range([256, 60], 3, 1), (768 + 3 * 632 + 512, 120))


class TestEpochRange(unittest.TestCase):
    def test_one_second_records(self):
        self.assertEqual(epoch_to_data_record_range(0, 1, 1), (0, 2))
        self.assertEqual(epoch_to_data_record_range(9, 1, 1), (9, 2))
        self.assertEqual(epoch_to_data_record_range(3, 2, 1), (6, 3))
        self.assertEqual(epoch_to_data_record_range(2, 30, 1), (60, 31))

    def test_longer_records_keep_unnormalized_start(self):
        # the start is epoch_index * epoch_size records whatever the duration
        self.assertEqual(epoch_to_data_record_range(1, 4, 2), (4, 3))
        self.assertEqual(epoch_to_data_record_range(1, 30, 30), (30, 2))

    def test_normalized_duration(self):
        self.assertEqual(epoch_to_data_record_range(1, 4, 2, normalize_duration=True), (2, 2))
        self.assertEqual(epoch_to_data_record_range(1, 30, 30, normalize_duration=True), (1, 1))
        self.assertEqual(epoch_to_data_record_range(0, 5, 2, normalize_duration=True), (0, 3))
        self.assertEqual(epoch_to_data_record_range(3, 2, 1, normalize_duration=True), (6, 2))

    def test_missing_duration_retrieves_one_record(self):
        self.assertEqual(epoch_to_data_record_range(2, 5, 0), (10, 1))
        self.assertEqual(epoch_to_data_record_range(2, 5, None), (10, 1))


class TestRecordMatrix(unittest.TestCase):
    def test_decode_and_split(self):
        spr = [1, 1, 2]
        raw = np.array([0, 0, 0, 1, 1, 1, 2, 3, 2, 2, 4, 5], dtype="<i2").tobytes()
        matrix = decode_records(raw, spr)
        self.assertEqual(matrix.shape, (3, 4))
        one, two, three = split_record_matrix(matrix, spr)
        assert_array_equal(one, [0, 1, 2])
        assert_array_equal(two, [0, 1, 2])
        assert_array_equal(three, [0, 1, 2, 3, 4, 5])

    def test_negative_little_endian(self):
        raw = b"\xff\xff\x00\x80\xff\x7f"
        matrix = decode_records(raw, [3])
        assert_array_equal(matrix, [[-1, -32768, 32767]])

    def test_partial_record_is_dropped(self):
        raw = np.arange(6, dtype="<i2").tobytes()
        self.assertEqual(decode_records(raw, [4]).shape, (1, 4))


class TestRecordLayout(unittest.TestCase):
    def test_layout_object(self):
        layout = RecordLayout([1, 1, 2], record_duration=1)
        self.assertEqual(layout.number_of_signals, 3)
        self.assertEqual(layout.header_byte_size, 1024)
        self.assertEqual(layout.bytes_per_data_record, 8)
        self.assertEqual(layout.samples_per_record_total, 4)
        self.assertEqual(layout.record_byte_offset(9), 1024 + 72)
        self.assertEqual(layout.sample_byte_range(1, 1), (1024 + 8 + 2, 2))
        self.assertEqual(layout.epoch_to_data_record_range(3, 2), (6, 3))
        self.assertEqual(layout.data_size(10), 80)

    def test_record_count_for_size(self):
        layout = RecordLayout([1, 1, 2])
        self.assertEqual(layout.record_count_for_size(1024 + 80), 10)
        self.assertEqual(layout.record_count_for_size(1024 + 79), 9)
        self.assertEqual(layout.record_count_for_size(500), 0)
        self.assertEqual(RecordLayout([]).record_count_for_size(2000), 0)


if __name__ == "__main__":
    unittest.main()
