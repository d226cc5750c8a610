import logging
import os
import shutil
import tempfile

from tacho_engine import TachoEngine, error_response
from tachydrive.infrastructure.repositories.decoder_card_repository import DecoderCardRepository

logger = logging.getLogger(__name__)

NO_FILE_ERROR = "Aucun fichier envoyé"


class UploadService:
    """
    Handles one uploaded card file: decode, analyze, then delete the temporary file.

    The temp file belongs to this service once handed over; it is removed on
    every exit path, analysis failure included.
    """

    def __init__(self, repository=None, engine=None):
        self.repository = repository or DecoderCardRepository()
        self.engine = engine or TachoEngine()

    def handle_upload(self, file_path, delete_after=True):
        if not file_path:
            logger.error("No file uploaded")
            return {"error": NO_FILE_ERROR}

        logger.info(f"File uploaded: {file_path}")
        try:
            decoded = self.repository.decode(file_path)
            return self.engine.analyze(decoded)
        except Exception as e:
            logger.error(f"Erreur traitement: {e}")
            return error_response(e)
        finally:
            if delete_after:
                self._delete(file_path)

    def handle_stream(self, stream, filename="card.ddd"):
        """Copies an uploaded binary stream to a temp file and processes it."""
        if stream is None:
            return {"error": NO_FILE_ERROR}
        suffix = os.path.splitext(filename)[1] or ".ddd"
        with tempfile.NamedTemporaryFile(suffix=suffix, delete=False) as tmp:
            shutil.copyfileobj(stream, tmp)
            path = tmp.name
        return self.handle_upload(path, delete_after=True)

    @staticmethod
    def _delete(path):
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Error deleting temp file {path}: {e}")
