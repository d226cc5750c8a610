def filter_period(result, start_date=None, end_date=None):
    """
    Restricts an engine result to the inclusive period [start_date, end_date].

    Dates are ISO strings (YYYY-MM-DD) compared as strings, either bound may be
    omitted. Infractions without a date are always kept. The input dict is not modified.
    """
    start_date = _as_iso(start_date)
    end_date = _as_iso(end_date)

    def in_period(day):
        day = day[:10]
        if start_date and day < start_date:
            return False
        if end_date and day > end_date:
            return False
        return True

    filtered = dict(result)
    filtered["days"] = [d for d in result.get("days", []) if in_period(d["date"])]
    filtered["infractions"] = [
        inf for inf in result.get("infractions", [])
        if not inf.get("date") or in_period(inf["date"])
    ]
    return filtered


def period_label(start_date=None, end_date=None):
    start_date, end_date = _as_iso(start_date), _as_iso(end_date)
    if start_date and end_date:
        return f"{start_date} au {end_date}"
    if start_date:
        return f"depuis le {start_date}"
    if end_date:
        return f"jusqu'au {end_date}"
    return "Toutes les dates"


def _as_iso(value):
    if not value:
        return None
    return value.isoformat() if hasattr(value, "isoformat") else str(value)
