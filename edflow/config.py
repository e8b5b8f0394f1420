"""Configuration management for edflow."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


class Config:
    """Runtime configuration."""

    # Durable cache
    CACHE_URL: str = os.getenv("EDFLOW_CACHE_URL", "sqlite:///edflow_cache.db")
    CACHE_DEBOUNCE_MS: int = int(os.getenv("EDFLOW_CACHE_DEBOUNCE_MS", "250"))

    # Event log duplicate suppression window
    DUPLICATE_WINDOW_MS: int = int(os.getenv("EDFLOW_DUPLICATE_WINDOW_MS", "100"))

    # EWS band thresholds. Policy, not clinical constants: confirm locally.
    EWS_HIGH_TOTAL: int = int(os.getenv("EDFLOW_EWS_HIGH_TOTAL", "7"))
    EWS_MEDIUM_TOTAL: int = int(os.getenv("EDFLOW_EWS_MEDIUM_TOTAL", "4"))
    OXYGEN_POINTS: int = int(os.getenv("EDFLOW_OXYGEN_POINTS", "2"))

    # Observation cadence per band (minutes)
    CADENCE_HIGH_MIN: int = int(os.getenv("EDFLOW_CADENCE_HIGH_MIN", "15"))
    CADENCE_MEDIUM_MIN: int = int(os.getenv("EDFLOW_CADENCE_MEDIUM_MIN", "30"))
    CADENCE_LOW_MIN: int = int(os.getenv("EDFLOW_CADENCE_LOW_MIN", "60"))

    LOG_LEVEL: str = os.getenv("EDFLOW_LOG_LEVEL", "INFO")

    @classmethod
    def debounce_seconds(cls) -> float:
        return max(0, cls.CACHE_DEBOUNCE_MS) / 1000.0

    @classmethod
    def duplicate_window_seconds(cls) -> float:
        return max(0, cls.DUPLICATE_WINDOW_MS) / 1000.0


config = Config()


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for a dashboard session."""
    logging.basicConfig(
        level=getattr(logging, (level or config.LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
