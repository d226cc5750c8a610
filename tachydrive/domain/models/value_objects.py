from enum import Enum, IntEnum

from tachydrive.domain.errors import UnknownActivityTypeError


class ActivityType(Enum):
    """Driver activity state as recorded by the card (work_type code)."""
    REST = 0
    AVAILABILITY = 1
    WORK = 2
    DRIVE = 3

    @classmethod
    def from_code(cls, code, calendar_date=None):
        """
        Resolves a decoder work_type code (or an existing member) to an ActivityType.

        Raises:
            UnknownActivityTypeError: if the code is not one of the four card states.
        """
        if isinstance(code, cls):
            return code
        # bool is an int subclass, but True/False are never card codes
        if isinstance(code, bool) or not isinstance(code, int):
            raise UnknownActivityTypeError(calendar_date, code)
        try:
            return cls(code)
        except ValueError:
            raise UnknownActivityTypeError(calendar_date, code) from None


class Severity(Enum):
    TRES_GRAVE = "TRES_GRAVE"
    GRAVE = "GRAVE"
    MOYENNE = "MOYENNE"
    LEGERE = "LEGERE"


class CardGeneration(IntEnum):
    GEN1 = 1
    GEN2 = 2
