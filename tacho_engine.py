"""
TachyDrive analysis engine: single entry point from a decoded driver card to
per-day hours and RSE infractions.

    result = TachoEngine().analyze(decoded_card)
    # {"success": True, "driver": {...}, "infractions": [...], "days": [...]}
    # or {"error": "Erreur analyse fichier", "details": "..."}
"""
import logging

from compliance_engine import ComplianceEngine
from daily_aggregator import DailyHourAggregator
from interval_reconstructor import IntervalReconstructor
from tachydrive.domain.models.entities import AnalysisResult, CardExtraction
from tachydrive.infrastructure.mappers.card_mapper import CardDomainMapper

logger = logging.getLogger(__name__)

ANALYSIS_ERROR = "Erreur analyse fichier"


class TachoEngine:
    """
    Stateless facade over reconstruction, aggregation and compliance analysis.

    Every call builds its own working data, so one instance can serve
    several cards concurrently.
    """

    def __init__(self):
        self.reconstructor = IntervalReconstructor()
        self.aggregator = DailyHourAggregator(self.reconstructor)

    def run(self, card) -> AnalysisResult:
        """
        Analyzes one card and returns the domain result.

        Args:
            card: CardExtraction, or the raw decoder JSON (dict).

        Raises:
            MalformedRecordError, UnknownActivityTypeError: corrupted or unsupported card read.
        """
        if isinstance(card, dict):
            card = CardDomainMapper.to_domain(card)
        elif not isinstance(card, CardExtraction):
            raise TypeError(f"Unsupported card input: {type(card).__name__}")

        intervals = self.reconstructor.reconstruct_all(card.records)
        day_totals = self.aggregator.fold(intervals)
        infractions = ComplianceEngine(self.aggregator).analyze(intervals, day_totals)

        days = self.aggregator.sorted_days(day_totals, newest_first=True)
        logger.debug(f"Computed daily hours for {len(days)} days, {len(infractions)} infractions")
        return AnalysisResult(driver=card.driver, days=days, infractions=infractions)

    def analyze(self, card):
        """Wire-level variant of run(): a full result dict, or the single error shape."""
        try:
            return self.run(card).to_dict()
        except Exception as e:
            logger.exception(f"{ANALYSIS_ERROR}: {e}")
            return error_response(e)


def error_response(error, message=ANALYSIS_ERROR):
    return {"error": message, "details": str(error)}


def analyze_card(card):
    return TachoEngine().analyze(card)
