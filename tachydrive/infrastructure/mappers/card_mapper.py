from datetime import datetime
from typing import Dict, Any, List, Optional
import logging

from tachydrive.domain.models.entities import (
    ActivityChangePoint,
    CardExtraction,
    DailyChangeRecord,
    DriverIdentity,
)
from tachydrive.domain.models.value_objects import CardGeneration

logger = logging.getLogger(__name__)


class CardDomainMapper:
    """Maps the JSON produced by the external card decoder (dddparser layout) to domain entities."""

    IDENTIFICATION_KEYS = (
        "card_identification_and_driver_card_holder_identification_1",
        "card_identification_and_driver_card_holder_identification_2",
    )
    ACTIVITY_KEYS = {
        CardGeneration.GEN1: "card_driver_activity_1",
        CardGeneration.GEN2: "card_driver_activity_2",
    }

    @staticmethod
    def to_domain(decoded: Dict[str, Any], source: str = "decoder") -> CardExtraction:
        """
        Builds a CardExtraction from the decoder output.

        Change point values are passed through untouched: offsets and work_type
        codes are validated by the interval reconstructor, so a corrupted card
        read fails the analysis instead of being silently fixed here.
        """
        if not isinstance(decoded, dict):
            raise ValueError(f"Decoder output must be a JSON object, got {type(decoded).__name__}")

        driver = CardDomainMapper._map_driver(decoded)

        records = []
        for generation, key in CardDomainMapper.ACTIVITY_KEYS.items():
            block = decoded.get(key) or {}
            records.extend(CardDomainMapper._map_daily_records(
                block.get("decoded_activity_daily_records") or [], generation
            ))

        logger.debug(f"Mapped {len(records)} daily records ({source}) for card {driver.card_number or 'N/A'}")
        return CardExtraction(driver=driver, records=records, source=source)

    @staticmethod
    def _map_driver(decoded: Dict[str, Any]) -> DriverIdentity:
        # Gen 1 identification first, gen 2 as fallback
        for key in CardDomainMapper.IDENTIFICATION_KEYS:
            block = decoded.get(key)
            if not block:
                continue
            holder = (block.get("driver_card_holder_identification") or {}).get("card_holder_name") or {}
            card = block.get("card_identification") or {}
            if not holder and not card:
                continue
            return DriverIdentity(
                surname=holder.get("holder_surname") or "Inconnu",
                first_name=holder.get("holder_first_names") or "",
                card_number=str(card.get("card_number") or ""),
            )
        return DriverIdentity()

    @staticmethod
    def _map_daily_records(raw_records: List[Dict[str, Any]], generation: int) -> List[DailyChangeRecord]:
        records = []
        for raw in raw_records:
            calendar_date = CardDomainMapper._parse_date(raw.get("activity_record_date"))
            if calendar_date is None:
                logger.warning(f"Gen {generation} daily record without a usable date skipped: "
                               f"{raw.get('activity_record_date')!r}")
                continue

            points = [
                ActivityChangePoint(offset_minutes=change.get("minutes"), activity_type=change.get("work_type"))
                for change in raw.get("activity_change_info") or []
            ]
            records.append(DailyChangeRecord(
                calendar_date=calendar_date,
                change_points=points,
                card_generation=generation,
            ))
        return records

    @staticmethod
    def _parse_date(value: Optional[str]):
        """Date part of an ISO timestamp such as 2024-03-01T00:00:00Z."""
        if not value or not isinstance(value, str):
            return None
        try:
            return datetime.strptime(value[:10], "%Y-%m-%d").date()
        except ValueError:
            return None
