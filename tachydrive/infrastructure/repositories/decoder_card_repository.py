import json
import logging
import os
import subprocess

from tacho_config import TachoConfig
from tachydrive.domain.errors import DecoderError
from tachydrive.domain.models.entities import CardExtraction
from tachydrive.domain.repositories.card_repository import CardRepository
from tachydrive.infrastructure.mappers.card_mapper import CardDomainMapper
from tachydrive.infrastructure.mock_data import get_mock_card_data

logger = logging.getLogger(__name__)


class DecoderCardRepository(CardRepository):
    """
    Obtains decoded card data from the external native decoder.

    The decoder is a black box: it is run as `<decoder> -card -input <file>`
    and must print one JSON document on stdout. Saved decoder dumps (.json)
    are read directly. When the decoder binary is absent and mocks are allowed,
    the fixed mock card is returned instead.
    """

    def __init__(self, config=None):
        self.config = config or TachoConfig.from_env()

    def get_by_path(self, path: str) -> CardExtraction:
        """
        Raises:
            FileNotFoundError: If the file does not exist.
            DecoderError: If the decoder fails or prints something that is not JSON.
        """
        decoded, source = self._decode_with_source(path)
        return CardDomainMapper.to_domain(decoded, source=source)

    def decode(self, path: str):
        """Raw decoder JSON (dict) for the file, without mapping."""
        return self._decode_with_source(path)[0]

    def _decode_with_source(self, path):
        if not os.path.exists(path):
            raise FileNotFoundError(f"File not found: {path}")

        if path.lower().endswith(".json"):
            with open(path, "r", encoding="utf-8") as f:
                try:
                    return json.load(f), "json"
                except json.JSONDecodeError as e:
                    raise DecoderError(f"Fichier JSON illisible {os.path.basename(path)}: {e}") from e

        decoder = self.config.decoder_path
        if not os.path.isfile(decoder):
            if not self.config.allow_mock:
                raise DecoderError(f"Décodeur introuvable: {decoder}")
            logger.warning(f"{os.path.basename(decoder)} not found. Returning mock data.")
            return get_mock_card_data(), "mock"

        return self._run_decoder(decoder, path), "decoder"

    def _run_decoder(self, decoder, path):
        try:
            proc = subprocess.run(
                [decoder, "-card", "-input", path],
                capture_output=True,
                timeout=self.config.decoder_timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise DecoderError(f"dddparser n'a pas répondu en {self.config.decoder_timeout:g}s") from e
        except OSError as e:
            raise DecoderError(f"Impossible de lancer dddparser: {e}") from e

        stdout = proc.stdout.decode("utf-8", errors="replace")
        if proc.returncode != 0:
            stderr = proc.stderr.decode("utf-8", errors="replace")
            raise DecoderError(f"dddparser a échoué (code {proc.returncode}): {stderr}")

        try:
            return json.loads(stdout)
        except json.JSONDecodeError as e:
            raise DecoderError(
                f"Erreur parsing JSON sortie dddparser: {e} | Début sortie: {stdout[:100]}"
            ) from e
