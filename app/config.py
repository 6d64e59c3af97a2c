"""
Application configuration
"""
import os
from dotenv import load_dotenv

load_dotenv()


def _get_env_int(name: str, default: int) -> int:
    raw = os.getenv(name, str(default)).strip()
    try:
        return int(raw)
    except ValueError:
        return default


class Settings:
    """Settings from environment variables"""

    # Storage
    DATABASE_PATH: str = os.getenv("DATABASE_PATH", "crease_scorer.db")
    MATCH_CODE_LENGTH: int = _get_env_int("MATCH_CODE_LENGTH", 6)
    MATCH_CACHE_TTL_SECONDS: int = _get_env_int("MATCH_CACHE_TTL_SECONDS", 30)

    # JWT settings (identity of the match creator)
    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "change-me-in-production")
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = _get_env_int("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24)

    # Matches with no activity for this long are abandoned by the sweep
    ABANDON_AFTER_MINUTES: int = _get_env_int("ABANDON_AFTER_MINUTES", 30)

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "")


settings = Settings()
