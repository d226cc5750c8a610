from datetime import date, datetime, time, timedelta

MOCK_DAYS = 5

# One synthetic day: rest, drive from 08:00, rest at 12:00, drive 12:45, rest from 16:40
MOCK_CHANGES = (
    (0, 0),
    (480, 3),
    (720, 0),
    (765, 3),
    (1000, 0),
)


def get_mock_card_data(today=None):
    """
    Decoder-shaped JSON used when the external decoder is not installed.

    The mock is one synthetic gen 1 daily record (MOCK_CHANGES) stamped on the
    MOCK_DAYS days ending at `today`. A single record would only yield one day;
    repeating it gives the five days of constant hours without any precomputed
    per-day summary, so the mock goes through the same mapping and analysis as
    a real decoder output.
    """
    today = today or date.today()
    records = []
    for i in range(MOCK_DAYS):
        day = today - timedelta(days=i)
        records.append({
            "activity_record_date": datetime.combine(day, time()).isoformat() + "Z",
            "activity_change_info": [
                {"minutes": minutes, "work_type": work_type} for minutes, work_type in MOCK_CHANGES
            ],
        })

    return {
        "card_identification_and_driver_card_holder_identification_1": {
            "driver_card_holder_identification": {
                "card_holder_name": {
                    "holder_surname": "DUPONT (MOCK)",
                    "holder_first_names": "Jean",
                }
            },
            "card_identification": {
                "card_number": "1234567890123456",
            },
        },
        "card_driver_activity_1": {
            "decoded_activity_daily_records": records,
        },
    }
