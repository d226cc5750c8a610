"""Tests for rebuilding activity intervals from daily change points."""
import os
import sys
from datetime import date

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from interval_reconstructor import IntervalReconstructor
from tachydrive.domain.errors import MalformedRecordError, UnknownActivityTypeError
from tests.generate_mock_data import make_record, REST, AVAILABILITY, WORK, DRIVE, REGULAR_DAY

DAY = date(2024, 3, 4)


class TestReconstruct:
    def setup_method(self):
        self.reconstructor = IntervalReconstructor()

    def test_full_day_sums_to_24_hours(self):
        intervals = self.reconstructor.reconstruct(make_record(DAY, REGULAR_DAY))
        assert sum(iv.duration_hours for iv in intervals) == 24.0
        assert intervals[0].start_minute == 0
        assert intervals[-1].end_minute == 1440

    def test_intervals_are_contiguous(self):
        intervals = self.reconstructor.reconstruct(make_record(DAY, REGULAR_DAY))
        for current, nxt in zip(intervals, intervals[1:]):
            assert current.end_minute == nxt.start_minute
            assert current.end_minute > current.start_minute

    def test_types_and_durations(self):
        record = make_record(DAY, [(0, REST), (480, DRIVE), (720, WORK), (780, AVAILABILITY)])
        intervals = self.reconstructor.reconstruct(record)
        assert [iv.activity_type for iv in intervals] == [REST, DRIVE, WORK, AVAILABILITY]
        assert [iv.duration_hours for iv in intervals] == [8.0, 4.0, 1.0, 11.0]
        assert all(iv.date == DAY for iv in intervals)

    def test_raw_codes_are_resolved(self):
        intervals = self.reconstructor.reconstruct(make_record(DAY, [(0, 0), (60, 1), (120, 2), (180, 3)]))
        assert [iv.activity_type for iv in intervals] == [REST, AVAILABILITY, WORK, DRIVE]

    def test_unsorted_points_are_sorted(self):
        record = make_record(DAY, [(600, REST), (0, DRIVE)])
        intervals = self.reconstructor.reconstruct(record)
        assert [(iv.start_minute, iv.end_minute, iv.activity_type) for iv in intervals] == [
            (0, 600, DRIVE), (600, 1440, REST)
        ]

    def test_time_before_first_point_not_synthesized(self):
        intervals = self.reconstructor.reconstruct(make_record(DAY, [(840, DRIVE)]))
        assert len(intervals) == 1
        assert intervals[0].start_minute == 840
        assert intervals[0].duration_hours == 10.0

    def test_empty_record_produces_nothing(self):
        assert self.reconstructor.reconstruct(make_record(DAY, [])) == []

    def test_duplicate_offset_keeps_last_point(self):
        record = make_record(DAY, [(0, REST), (300, WORK), (300, DRIVE)])
        intervals = self.reconstructor.reconstruct(record)
        assert [(iv.start_minute, iv.activity_type) for iv in intervals] == [(0, REST), (300, DRIVE)]

    def test_generation_is_carried(self):
        intervals = self.reconstructor.reconstruct(make_record(DAY, [(0, REST)], generation=2))
        assert intervals[0].card_generation == 2


class TestInvalidRecords:
    def setup_method(self):
        self.reconstructor = IntervalReconstructor()

    @pytest.mark.parametrize("offset", [1440, 1500, -1])
    def test_offset_out_of_range(self, offset):
        with pytest.raises(MalformedRecordError) as exc:
            self.reconstructor.reconstruct(make_record(DAY, [(0, REST), (offset, DRIVE)]))
        assert exc.value.offset_minutes == offset
        assert exc.value.calendar_date == DAY
        assert "2024-03-04" in str(exc.value)

    def test_missing_offset(self):
        with pytest.raises(MalformedRecordError):
            self.reconstructor.reconstruct(make_record(DAY, [(None, REST)]))

    @pytest.mark.parametrize("code", [4, -1, "DRIVE", None])
    def test_unknown_activity_code(self, code):
        with pytest.raises(UnknownActivityTypeError) as exc:
            self.reconstructor.reconstruct(make_record(DAY, [(0, REST), (60, code)]))
        assert exc.value.code == code


class TestReconstructAll:
    def test_chronological_across_days_and_generations(self):
        reconstructor = IntervalReconstructor()
        day2 = date(2024, 3, 5)
        records = [
            make_record(day2, [(0, REST)], generation=1),
            make_record(DAY, [(720, DRIVE)], generation=2),
            make_record(DAY, [(0, REST)], generation=1),
        ]
        intervals = reconstructor.reconstruct_all(records)
        assert [(iv.date, iv.start_minute) for iv in intervals] == [
            (DAY, 0), (DAY, 720), (day2, 0)
        ]
