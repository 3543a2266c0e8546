import os
import logging
from dataclasses import dataclass

from dotenv import load_dotenv

from extractor import DEFAULT_BASE_URL

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3000
DEFAULT_TIMEOUT_MS = 10000


def _int_env(name, default):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"{name}={raw!r} is not an integer, using {default}")
        return default


@dataclass
class Config:
    """Settings read once at startup and handed to the redeemer and the app."""
    port: int = DEFAULT_PORT
    request_timeout_ms: int = DEFAULT_TIMEOUT_MS
    base_url: str = DEFAULT_BASE_URL
    log_level: str = "INFO"

    def __post_init__(self):
        self.base_url = self.base_url.rstrip("/")

    @property
    def request_timeout(self):
        """Timeout in seconds, as requests expects it."""
        return self.request_timeout_ms / 1000.0

    @classmethod
    def from_env(cls):
        load_dotenv()
        return cls(
            port=_int_env("PORT", DEFAULT_PORT),
            request_timeout_ms=_int_env("REQUEST_TIMEOUT_MS", DEFAULT_TIMEOUT_MS),
            base_url=os.getenv("TRUEMONEY_BASE_URL") or DEFAULT_BASE_URL,
            log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        )


def setup_logging(level="INFO"):
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
