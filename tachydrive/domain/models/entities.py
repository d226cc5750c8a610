from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional

from .value_objects import ActivityType, CardGeneration, Severity

MINUTES_PER_DAY = 1440


@dataclass(frozen=True)
class ActivityChangePoint:
    offset_minutes: int
    # ActivityType member or the raw decoder work_type code; resolved by the reconstructor
    activity_type: Any


@dataclass
class DailyChangeRecord:
    calendar_date: date
    change_points: List[ActivityChangePoint] = field(default_factory=list)
    card_generation: int = CardGeneration.GEN1


@dataclass(frozen=True)
class ActivityInterval:
    date: date
    start_minute: int
    end_minute: int
    activity_type: ActivityType
    card_generation: int = CardGeneration.GEN1

    @property
    def duration_minutes(self) -> int:
        return self.end_minute - self.start_minute

    @property
    def duration_hours(self) -> float:
        return self.duration_minutes / 60

    @property
    def start(self) -> datetime:
        return datetime.combine(self.date, time()) + timedelta(minutes=self.start_minute)

    @property
    def end(self) -> datetime:
        return datetime.combine(self.date, time()) + timedelta(minutes=self.end_minute)


@dataclass
class DailySummary:
    """
    Hours per activity type for one calendar day.

    Durations are accumulated as whole minutes so that folding intervals from
    several card generations gives the same result in any order; hours are
    derived on read and only rounded in to_dict().
    """
    date: date
    driving_minutes: int = 0
    other_work_minutes: int = 0
    availability_minutes: int = 0
    rest_minutes: int = 0

    def add_interval(self, interval: ActivityInterval) -> None:
        minutes = interval.duration_minutes
        if interval.activity_type is ActivityType.DRIVE:
            self.driving_minutes += minutes
        elif interval.activity_type is ActivityType.WORK:
            self.other_work_minutes += minutes
        elif interval.activity_type is ActivityType.AVAILABILITY:
            self.availability_minutes += minutes
        elif interval.activity_type is ActivityType.REST:
            self.rest_minutes += minutes
        else:
            raise TypeError(f"Unexpected activity type: {interval.activity_type!r}")

    def merge(self, other: "DailySummary") -> "DailySummary":
        if other.date != self.date:
            raise ValueError(f"Cannot merge summaries of {self.date} and {other.date}")
        return DailySummary(
            date=self.date,
            driving_minutes=self.driving_minutes + other.driving_minutes,
            other_work_minutes=self.other_work_minutes + other.other_work_minutes,
            availability_minutes=self.availability_minutes + other.availability_minutes,
            rest_minutes=self.rest_minutes + other.rest_minutes,
        )

    @property
    def driving_hours(self) -> float:
        return self.driving_minutes / 60

    @property
    def other_work_hours(self) -> float:
        return self.other_work_minutes / 60

    @property
    def availability_hours(self) -> float:
        return self.availability_minutes / 60

    @property
    def rest_hours(self) -> float:
        return self.rest_minutes / 60

    @property
    def total_work_hours(self) -> float:
        return (self.driving_minutes + self.other_work_minutes) / 60

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "drivingHours": round(self.driving_hours, 2),
            "otherWorkHours": round(self.other_work_hours, 2),
            "availabilityHours": round(self.availability_hours, 2),
            "restHours": round(self.rest_hours, 2),
            "totalWorkHours": round(self.total_work_hours, 2),
        }


@dataclass(frozen=True)
class Infraction:
    code: str
    type: str
    description: str
    severity: Severity
    date: Optional[date] = None

    def sort_key(self):
        # Undated (card-level) infractions go after every dated one
        return (self.date is None, self.date or date.min, self.code, self.description)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "type": self.type,
            "description": self.description,
            "date": self.date.isoformat() if self.date else None,
            "severity": self.severity.value,
        }


@dataclass(frozen=True)
class DriverIdentity:
    surname: str = "Inconnu"
    first_name: str = ""
    card_number: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {
            "name": self.surname,
            "firstName": self.first_name,
            "cardNumber": self.card_number,
        }


@dataclass
class CardExtraction:
    driver: DriverIdentity = field(default_factory=DriverIdentity)
    records: List[DailyChangeRecord] = field(default_factory=list)
    # "decoder", "mock" or "json"; informational only
    source: str = "decoder"


@dataclass(frozen=True)
class AnalysisResult:
    driver: DriverIdentity
    days: List[DailySummary]
    infractions: List[Infraction]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "driver": self.driver.to_dict(),
            "infractions": [inf.to_dict() for inf in self.infractions],
            "days": [day.to_dict() for day in self.days],
        }
