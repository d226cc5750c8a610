import os
from dataclasses import dataclass

PROJECT_DIR = os.path.dirname(os.path.abspath(__file__))

_TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass
class TachoConfig:
    """Runtime settings, read from TACHYDRIVE_* environment variables."""
    # External card decoder: dddparser -card -input <file> prints JSON on stdout
    decoder_path: str = os.path.join(PROJECT_DIR, "dddparser.exe")
    decoder_timeout: float = 60.0
    # Fall back to the fixed mock card when the decoder binary is missing
    allow_mock: bool = True
    export_dir: str = "."

    @classmethod
    def from_env(cls, environ=None):
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            decoder_path=env.get("TACHYDRIVE_DECODER_PATH", defaults.decoder_path),
            decoder_timeout=float(env.get("TACHYDRIVE_DECODER_TIMEOUT", defaults.decoder_timeout)),
            allow_mock=env.get("TACHYDRIVE_ALLOW_MOCK", str(defaults.allow_mock)).strip().lower() in _TRUE_VALUES,
            export_dir=env.get("TACHYDRIVE_EXPORT_DIR", defaults.export_dir),
        )
