import logging

from tachydrive.domain.errors import MalformedRecordError
from tachydrive.domain.models.entities import ActivityInterval, MINUTES_PER_DAY
from tachydrive.domain.models.value_objects import ActivityType

logger = logging.getLogger(__name__)


class IntervalReconstructor:
    """
    Rebuilds typed time intervals from the activity change points of a daily record.

    Each change point opens an interval that lasts until the next change point,
    or until midnight for the last one of the day. Time before the first change
    point is left uncovered: the card gives no activity for it.
    """

    def reconstruct(self, record):
        """Returns the ordered ActivityInterval list for one DailyChangeRecord."""
        points = record.change_points
        if not points:
            return []

        for point in points:
            self._validate_offset(record.calendar_date, point.offset_minutes)

        # Stable sort: when two points share a minute, the later one in the record wins
        sorted_points = sorted(points, key=lambda p: p.offset_minutes)

        intervals = []
        for i in range(len(sorted_points)):
            point = sorted_points[i]
            activity_type = ActivityType.from_code(point.activity_type, record.calendar_date)
            start = point.offset_minutes
            if i < len(sorted_points) - 1:
                end = sorted_points[i + 1].offset_minutes
            else:
                end = MINUTES_PER_DAY

            if end == start:
                logger.debug(f"{record.calendar_date}: zero-length {activity_type.name} at minute {start} dropped")
                continue

            intervals.append(ActivityInterval(
                date=record.calendar_date,
                start_minute=start,
                end_minute=end,
                activity_type=activity_type,
                card_generation=record.card_generation,
            ))

        return intervals

    def reconstruct_all(self, records):
        """Intervals of every record, in chronological order (date, start, generation)."""
        intervals = []
        for record in records:
            intervals.extend(self.reconstruct(record))
        intervals.sort(key=lambda iv: (iv.date, iv.start_minute, iv.card_generation))
        return intervals

    @staticmethod
    def _validate_offset(calendar_date, offset):
        if isinstance(offset, bool) or not isinstance(offset, int):
            raise MalformedRecordError(calendar_date, offset)
        if not 0 <= offset < MINUTES_PER_DAY:
            raise MalformedRecordError(calendar_date, offset)
