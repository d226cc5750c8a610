import logging

from interval_reconstructor import IntervalReconstructor
from tachydrive.domain.models.entities import DailySummary

logger = logging.getLogger(__name__)


class DailyHourAggregator:
    """
    Folds activity intervals into one DailySummary per calendar date.

    Records of both card generations for the same date are summed, not
    reconciled: the card is expected to hold complementary gen 1 / gen 2 data.
    """

    def __init__(self, reconstructor=None):
        self.reconstructor = reconstructor or IntervalReconstructor()

    def aggregate(self, records):
        """Returns {date: DailySummary} for every record that has at least one interval."""
        summaries = {}
        for record in records:
            intervals = self.reconstructor.reconstruct(record)
            if not intervals:
                logger.debug(f"{record.calendar_date} (gen {record.card_generation}): no change points, skipped")
                continue
            partial = self.fold(intervals)
            summaries = self.merge_all(summaries, partial)
        return summaries

    @staticmethod
    def fold(intervals, summaries=None):
        """Adds interval durations to a {date: DailySummary} mapping (a new one when omitted)."""
        summaries = {} if summaries is None else summaries
        for interval in intervals:
            summary = summaries.get(interval.date)
            if summary is None:
                summary = summaries[interval.date] = DailySummary(date=interval.date)
            summary.add_interval(interval)
        return summaries

    @staticmethod
    def merge_all(left, right):
        """Merges two {date: DailySummary} mappings into a new one; inputs are left untouched."""
        merged = dict(left)
        for day, summary in right.items():
            merged[day] = merged[day].merge(summary) if day in merged else summary
        return merged

    @staticmethod
    def sorted_days(summaries, newest_first=True):
        return sorted(summaries.values(), key=lambda s: s.date, reverse=newest_first)
