from datetime import date, timedelta
import json
import os

from tachydrive.domain.models.entities import ActivityChangePoint, CardExtraction, DailyChangeRecord, DriverIdentity
from tachydrive.domain.models.value_objects import ActivityType

REST = ActivityType.REST
AVAILABILITY = ActivityType.AVAILABILITY
WORK = ActivityType.WORK
DRIVE = ActivityType.DRIVE


def make_record(day, changes, generation=1):
    """changes: iterable of (offset_minutes, ActivityType or raw code)."""
    return DailyChangeRecord(
        calendar_date=day,
        change_points=[ActivityChangePoint(offset, activity) for offset, activity in changes],
        card_generation=generation,
    )


def make_card(records, surname="MARTIN", first_name="Paul", card_number="F000123456789000"):
    return CardExtraction(
        driver=DriverIdentity(surname=surname, first_name=first_name, card_number=card_number),
        records=list(records),
    )


def consecutive_days(start, changes, count, generation=1):
    """Same change points repeated on `count` consecutive days from `start`."""
    return [make_record(start + timedelta(days=i), changes, generation) for i in range(count)]


def decoder_json(gen1_days=None, gen2_days=None, surname="MARTIN", first_names="Paul",
                 card_number="F000123456789000"):
    """
    Decoder-shaped dict. gen*_days: {date: [(minutes, work_type), ...]}.
    """
    def block(days):
        return {"decoded_activity_daily_records": [
            {
                "activity_record_date": f"{day.isoformat()}T00:00:00Z",
                "activity_change_info": [{"minutes": m, "work_type": w} for m, w in changes],
            }
            for day, changes in days.items()
        ]}

    data = {
        "card_identification_and_driver_card_holder_identification_1": {
            "driver_card_holder_identification": {
                "card_holder_name": {"holder_surname": surname, "holder_first_names": first_names}
            },
            "card_identification": {"card_number": card_number},
        }
    }
    if gen1_days is not None:
        data["card_driver_activity_1"] = block(gen1_days)
    if gen2_days is not None:
        data["card_driver_activity_2"] = block(gen2_days)
    return data


def write_decoder_dump(directory, name, data):
    path = os.path.join(directory, name)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f)
    return path


# A regular working day: 9h rest, 4h drive, 45 min break, 4h drive, 15 min work, rest
REGULAR_DAY = [(0, 0), (540, 3), (780, 0), (825, 3), (1065, 2), (1080, 0)]
MONDAY = date(2024, 3, 4)
