from abc import ABC, abstractmethod
from tachydrive.domain.models.entities import CardExtraction


class CardRepository(ABC):
    @abstractmethod
    def get_by_path(self, path: str) -> CardExtraction:
        """
        Decodes a driver card file from the given path and returns a domain entity.

        Args:
            path: The file path to the card download (.ddd) or a saved decoder JSON dump.

        Returns:
            CardExtraction: driver identity and daily change records of both generations.
        """
        pass
