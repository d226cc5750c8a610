class TachoAnalysisError(Exception):
    """Base class for errors that abort a card analysis run."""


class MalformedRecordError(TachoAnalysisError):
    def __init__(self, calendar_date, offset_minutes):
        self.calendar_date = calendar_date
        self.offset_minutes = offset_minutes
        super().__init__(
            f"Enregistrement invalide du {_fmt_date(calendar_date)}: "
            f"offset {offset_minutes!r} hors de [0, 1440)"
        )


class UnknownActivityTypeError(TachoAnalysisError):
    def __init__(self, calendar_date, code):
        self.calendar_date = calendar_date
        self.code = code
        super().__init__(
            f"Type d'activité inconnu {code!r} dans l'enregistrement du {_fmt_date(calendar_date)}"
        )


class DecoderError(TachoAnalysisError):
    """The external card decoder failed or produced unreadable output."""


class InfractionDataAnomaly(Exception):
    """
    Non-fatal data problem found while checking compliance
    (negative hours, driving without any recorded rest, overlapping generations).

    It is never raised out of the analyzer: the analyzer turns it into an
    informational infraction so that a partial card read still yields a report.
    """

    def __init__(self, calendar_date, reason):
        self.calendar_date = calendar_date
        self.reason = reason
        super().__init__(reason)


def _fmt_date(value):
    if value is None:
        return "date inconnue"
    return value.isoformat() if hasattr(value, "isoformat") else str(value)
