"""Tests for per-day hour aggregation and generation merging."""
import os
import sys
from datetime import date
from itertools import permutations

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from daily_aggregator import DailyHourAggregator
from tachydrive.domain.models.entities import DailySummary
from tests.generate_mock_data import make_record, REST, AVAILABILITY, WORK, DRIVE, REGULAR_DAY

DAY = date(2024, 3, 4)


class TestAggregate:
    def setup_method(self):
        self.aggregator = DailyHourAggregator()

    def test_regular_day(self):
        summaries = self.aggregator.aggregate([make_record(DAY, REGULAR_DAY)])
        s = summaries[DAY]
        assert s.driving_hours == 8.0
        assert s.other_work_hours == 0.25
        assert s.availability_hours == 0.0
        assert s.rest_hours == 15.75
        assert s.total_work_hours == 8.25

    def test_total_work_is_driving_plus_other_work(self):
        records = [
            make_record(DAY, [(0, REST), (100, DRIVE), (333, WORK), (500, AVAILABILITY), (777, DRIVE), (1001, REST)]),
            make_record(date(2024, 3, 5), [(13, WORK), (95, DRIVE)]),
        ]
        for s in self.aggregator.aggregate(records).values():
            assert s.total_work_hours == pytest.approx(s.driving_hours + s.other_work_hours)

    def test_generations_are_summed(self):
        records = [
            make_record(DAY, [(0, REST), (600, DRIVE), (720, REST)], generation=1),
            make_record(DAY, [(900, DRIVE), (960, WORK), (1020, REST)], generation=2),
        ]
        s = self.aggregator.aggregate(records)[DAY]
        assert s.driving_minutes == 120 + 60
        assert s.other_work_minutes == 60
        # gen 1 rest: 600 + 720; gen 2 rest: 420
        assert s.rest_minutes == 600 + 720 + 420

    def test_merge_order_does_not_matter(self):
        records = [
            make_record(DAY, [(0, REST), (431, DRIVE), (517, REST)], generation=1),
            make_record(DAY, [(901, WORK), (977, DRIVE), (1013, AVAILABILITY)], generation=2),
            make_record(DAY, [(1, DRIVE), (7, REST)], generation=2),
        ]
        results = [self.aggregator.aggregate(list(p))[DAY] for p in permutations(records)]
        assert all(r == results[0] for r in results)
        assert all(r.to_dict() == results[0].to_dict() for r in results)

    def test_merge_is_associative(self):
        a = DailySummary(DAY, driving_minutes=7, rest_minutes=11)
        b = DailySummary(DAY, other_work_minutes=13, availability_minutes=3)
        c = DailySummary(DAY, driving_minutes=29, rest_minutes=1)
        assert a.merge(b).merge(c) == a.merge(b.merge(c))
        assert a.merge(b) == b.merge(a)

    def test_empty_input(self):
        assert self.aggregator.aggregate([]) == {}

    def test_day_without_change_points_is_absent(self):
        summaries = self.aggregator.aggregate([
            make_record(DAY, []),
            make_record(date(2024, 3, 5), [(0, REST)]),
        ])
        assert list(summaries) == [date(2024, 3, 5)]

    def test_sorted_days_newest_first(self):
        summaries = self.aggregator.aggregate([
            make_record(date(2024, 3, 1), [(0, REST)]),
            make_record(date(2024, 3, 9), [(0, REST)]),
            make_record(date(2024, 3, 5), [(0, REST)]),
        ])
        days = self.aggregator.sorted_days(summaries)
        assert [d.date for d in days] == [date(2024, 3, 9), date(2024, 3, 5), date(2024, 3, 1)]


class TestSummaryOutput:
    def test_rounded_once_on_output(self):
        s = DailySummary(DAY, driving_minutes=100, other_work_minutes=20)
        out = s.to_dict()
        assert out["date"] == "2024-03-04"
        assert out["drivingHours"] == 1.67
        assert out["otherWorkHours"] == 0.33
        # rounded from the exact 2.0, not from 1.67 + 0.33
        assert out["totalWorkHours"] == 2.0
        assert set(out) == {"date", "drivingHours", "otherWorkHours", "availabilityHours",
                            "restHours", "totalWorkHours"}
