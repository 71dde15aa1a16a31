"""Configuration management for the Strava FTP Coach."""

import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Application configuration."""

    # Strava API
    STRAVA_CLIENT_ID: str = os.getenv("STRAVA_CLIENT_ID", "")
    STRAVA_CLIENT_SECRET: str = os.getenv("STRAVA_CLIENT_SECRET", "")
    STRAVA_REDIRECT_URI: str = os.getenv("STRAVA_REDIRECT_URI", "http://localhost:8000/callback")
    STRAVA_API_BASE_URL: str = "https://www.strava.com/api/v3"
    STRAVA_AUTH_BASE_URL: str = "https://www.strava.com/oauth"
    STRAVA_PAGE_SIZE: int = int(os.getenv("STRAVA_PAGE_SIZE", "200"))  # max allowed by Strava
    REQUEST_TIMEOUT: float = float(os.getenv("REQUEST_TIMEOUT", "30"))  # seconds

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./strava_ftp_coach.db")

    # FTP estimation
    DEFAULT_FTP: int = int(os.getenv("DEFAULT_FTP", "200"))  # watts, used with zero qualifying rides
    FTP_LOOKBACK_DAYS: int = int(os.getenv("FTP_LOOKBACK_DAYS", "90"))

    # Training load windows (days)
    CHRONIC_LOAD_DAYS: int = int(os.getenv("CHRONIC_LOAD_DAYS", "42"))
    ACUTE_LOAD_DAYS: int = int(os.getenv("ACUTE_LOAD_DAYS", "7"))
    SYNC_LOOKBACK_DAYS: int = int(os.getenv("SYNC_LOOKBACK_DAYS", "42"))
    ZONE_MIX_DAYS: int = int(os.getenv("ZONE_MIX_DAYS", "28"))

    # Weekly planning
    PLANNED_TSS_PER_HOUR: float = float(os.getenv("PLANNED_TSS_PER_HOUR", "70"))  # moderate intensity
    DEFAULT_PLAN_SESSIONS: int = int(os.getenv("DEFAULT_PLAN_SESSIONS", "4"))
    DEFAULT_PLAN_MINUTES: int = int(os.getenv("DEFAULT_PLAN_MINUTES", "360"))
    DEFAULT_PLAN_TSS: int = int(os.getenv("DEFAULT_PLAN_TSS", "300"))
    UPCOMING_WEEKS: int = int(os.getenv("UPCOMING_WEEKS", "4"))

    # Application
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def validate(cls) -> bool:
        """Validate required configuration."""
        if not cls.STRAVA_CLIENT_ID or not cls.STRAVA_CLIENT_SECRET:
            raise ValueError(
                "Missing Strava API credentials. Please set STRAVA_CLIENT_ID and STRAVA_CLIENT_SECRET"
            )
        return True


config = Config()
