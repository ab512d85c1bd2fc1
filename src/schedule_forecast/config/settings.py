"""
Configuration settings for the scheduling & forecast engine.
Load configuration from environment variables or a project-root .env file.
"""
import os
from datetime import date
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
env_file = Path(__file__).parent.parent.parent.parent / '.env'
if env_file.exists():
    load_dotenv(env_file)


def _optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name, '').strip()
    return int(raw) if raw else None


def _optional_date(name: str) -> Optional[date]:
    raw = os.getenv(name, '').strip()
    return date.fromisoformat(raw) if raw else None


class Settings:
    """Application settings loaded from environment variables."""

    # Project paths
    PROJECT_ROOT = Path(__file__).parent.parent.parent.parent
    DATA_DIR = Path(os.getenv('DATA_DIR', str(PROJECT_ROOT / 'data')))

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_DIR = os.getenv('LOG_DIR', '')

    # ============================================================================
    # Scope variance
    # ============================================================================
    SCOPE_NOISE_THRESHOLD = float(os.getenv('SCOPE_NOISE_THRESHOLD', '0.5'))
    SCOPE_TOP_CHANGES = int(os.getenv('SCOPE_TOP_CHANGES', '5'))
    SCOPE_RECENT_DATES = int(os.getenv('SCOPE_RECENT_DATES', '10'))

    # ============================================================================
    # Velocity & forecast
    # ============================================================================
    TREND_TOLERANCE = float(os.getenv('TREND_TOLERANCE', '0.05'))
    CONFIDENCE_HIGH_DATES = int(os.getenv('CONFIDENCE_HIGH_DATES', '10'))
    CONFIDENCE_MEDIUM_DATES = int(os.getenv('CONFIDENCE_MEDIUM_DATES', '3'))
    VELOCITY_WINDOW_DAYS = _optional_int('VELOCITY_WINDOW_DAYS')

    # Anchor ("today") for projected schedules and forecasts; unset means the real today
    ANCHOR_DATE = _optional_date('ANCHOR_DATE')

    @classmethod
    def resolve_anchor_date(cls, anchor_date: Optional[date] = None) -> date:
        """Explicit anchor wins, then ANCHOR_DATE, then today."""
        if anchor_date is not None:
            return anchor_date
        return cls.ANCHOR_DATE or date.today()


# Create settings instance
settings = Settings()
