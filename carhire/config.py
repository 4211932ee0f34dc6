"""
Application configuration.

Values are read from environment variables, optionally loaded from a `.env`
file at the project root. `create_app(config=...)` can override any key.

    CARHIRE_SECRET_KEY   Flask session signing key
    CARHIRE_DATA_PATH    pickle file used by the Store
    CARHIRE_LOG_LEVEL    root logging level (default INFO)
    CARHIRE_TIMEZONE     zone used by the date display filter
"""
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parents[1]
ENV_FILE = BASE_DIR / ".env"

DEFAULT_SECRET_KEY = "dev-secret-change-me"
DEFAULT_DATA_PATH = BASE_DIR / "data.pkl"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_TIMEZONE = "Europe/London"


def load_config() -> dict:
    """Build the Flask config mapping from the environment."""
    if ENV_FILE.exists():
        load_dotenv(dotenv_path=ENV_FILE, override=False)
        logger.debug("Loaded .env file: %s", ENV_FILE)

    secret = os.getenv("CARHIRE_SECRET_KEY") or DEFAULT_SECRET_KEY
    if secret == DEFAULT_SECRET_KEY:
        logger.warning("CARHIRE_SECRET_KEY is not set; using the development key")

    level = (os.getenv("CARHIRE_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper()
    if level not in logging.getLevelNamesMapping():
        logger.warning("Unknown CARHIRE_LOG_LEVEL %r, falling back to %s", level, DEFAULT_LOG_LEVEL)
        level = DEFAULT_LOG_LEVEL

    return {
        "SECRET_KEY": secret,
        "DATA_PATH": os.getenv("CARHIRE_DATA_PATH") or str(DEFAULT_DATA_PATH),
        "LOG_LEVEL": level,
        "TIMEZONE": os.getenv("CARHIRE_TIMEZONE") or DEFAULT_TIMEZONE,
    }
