from pydantic_settings import BaseSettings
from dotenv import load_dotenv
from pathlib import Path
from typing import List
import logging
import os

_logger = logging.getLogger(__name__)

# Load .env explicitly before creating Settings
# Look for .env in api directory (parent of the package directory)
api_dir = Path(__file__).parent.parent.parent
env_path = api_dir / ".env"

if env_path.exists():
    load_dotenv(env_path)
    _logger.info(f"Loaded .env file from: {env_path}")
else:
    # Fallback to current directory
    current_env = Path(".env")
    if current_env.exists():
        load_dotenv(current_env)
        _logger.info(f"Loaded .env file from: {current_env.absolute()}")
    else:
        _logger.debug(f".env file not found at {env_path} or {current_env.absolute()}")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = ""

    # API
    api_v1_prefix: str = "/api/v1"

    # CORS
    cors_origins: list[str] = ["*"]

    # Scheduling
    default_desired_retention: float = 0.9
    min_reviews_for_optimal_retention: int = 50
    retention_cache_days: int = 7
    retention_min: float = 0.70
    retention_max: float = 0.95
    snooze_hours: int = 6

    # Memory model weights (empty = library defaults)
    fsrs_parameters: List[float] = []

    # Statistics
    streak_window_days: int = 30

    class Config:
        env_file = ".env"
        case_sensitive = False

    def __init__(self, **kwargs):
        # Ensure we read DATABASE_URL from environment (hosting platforms provide it uppercase)
        if not kwargs.get("database_url"):
            kwargs["database_url"] = os.getenv("DATABASE_URL", "")
        super().__init__(**kwargs)


# Create settings instance
settings = Settings()

# Validate required DATABASE_URL
if not settings.database_url:
    raise ValueError("DATABASE_URL environment variable is required")
