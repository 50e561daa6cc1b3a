"""
Application configuration for the civic-pulse feed server.
Reads settings from environment variables and provides defaults.
"""

import os
from pathlib import Path
from dataclasses import dataclass
from dotenv import load_dotenv

# Load .env file if present (explicit path avoids python-dotenv auto-discovery issues on newer Python)
ENV_PATH = Path(__file__).resolve().parents[1] / ".env"  # repo_root/.env if config/ is one level down
load_dotenv(dotenv_path=ENV_PATH, override=False)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class AppSettings:
    """
    Settings for polling the Open311 endpoint and pacing releases to subscribers.
    """

    # Upstream Open311 source
    OPEN311_CITY: str = os.getenv("PULSE_OPEN311_CITY", "chicago")
    OPEN311_ENDPOINT: str = os.getenv("PULSE_OPEN311_ENDPOINT", "")
    OPEN311_JURISDICTION: str = os.getenv("PULSE_OPEN311_JURISDICTION", "")
    OPEN311_API_KEY: str = os.getenv("PULSE_OPEN311_API_KEY", "")
    HTTP_TIMEOUT: float = float(os.getenv("PULSE_HTTP_TIMEOUT", "10.0"))
    INCLUDE_EXTENSIONS: bool = _env_bool("PULSE_INCLUDE_EXTENSIONS", "true")

    # How often (in minutes) to poll for updated requests
    REFRESH_MINUTES: float = float(os.getenv("PULSE_REFRESH_MINUTES", "2"))

    # Minimum spacing between two releases, in milliseconds
    MIN_DELAY_MS: int = int(os.getenv("PULSE_MIN_DELAY_MS", "1300"))

    # Number of recently released requests handed to new subscribers
    CACHE_CAPACITY: int = int(os.getenv("PULSE_CACHE_CAPACITY", "100"))

    # How far back the startup fetch looks
    INITIAL_LOOKBACK_MINUTES: float = float(os.getenv("PULSE_INITIAL_LOOKBACK_MINUTES", "60"))

    # Web server
    HOST: str = os.getenv("PULSE_HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "3000"))


# Create a single config instance for import
settings = AppSettings()
