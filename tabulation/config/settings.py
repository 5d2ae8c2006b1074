"""
tabulation/config/settings.py
Environment-driven settings for the tabulation service.

All values are loaded from environment variables (a local .env is read
first by python-dotenv). Required values are checked by Settings.validate()
when the store context starts, never at import time.
"""
import os
from typing import Dict, Any

from dotenv import load_dotenv

from tabulation.exceptions import ConfigurationError

load_dotenv()


def get_bool_env(key: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ('true', '1', 'yes', 'on', 'enabled')


def get_int_env(key: str, default: int) -> int:
    """Get an integer value from environment variable."""
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{key} must be an integer, got '{value}'")


TIE_BREAK_CONTESTANT_NUMBER = "contestant_number"
TIE_BREAK_INPUT_ORDER = "input_order"


class Settings:
    """
    Settings for the tabulation service.

    To add a new setting:
    1. Add a keyword argument here with its environment default
    2. Add it to REQUIRED if the service cannot start without it
    """

    REQUIRED = ("database_url", "jwt_secret_key")

    def __init__(
        self,
        database_url: str = None,
        jwt_secret_key: str = None,
        access_token_expire_minutes: int = None,
        log_level: str = None,
        sql_echo: bool = None,
        tie_break: str = None,
        login_rate_limit: str = None,
        allowed_origins: str = None,
    ):
        self.database_url = (
            database_url if database_url is not None
            else os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./tabulation.db")
        )
        self.jwt_secret_key = (
            jwt_secret_key if jwt_secret_key is not None
            else os.getenv("JWT_SECRET_KEY", "dev-secret-key-change-in-production")
        )
        self.access_token_expire_minutes = (
            access_token_expire_minutes if access_token_expire_minutes is not None
            else get_int_env("ACCESS_TOKEN_EXPIRE_MINUTES", 720)
        )
        self.log_level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
        self.sql_echo = sql_echo if sql_echo is not None else get_bool_env("SQL_ECHO", False)
        self.tie_break = tie_break or os.getenv("TIE_BREAK", TIE_BREAK_CONTESTANT_NUMBER)
        self.login_rate_limit = login_rate_limit or os.getenv("LOGIN_RATE_LIMIT", "10/minute")
        self.allowed_origins = [
            origin.strip()
            for origin in (allowed_origins or os.getenv("ALLOWED_ORIGINS", "http://localhost:3000")).split(",")
        ]

    def validate(self) -> "Settings":
        """Raise ConfigurationError when a required value is missing."""
        missing = [name for name in self.REQUIRED if not (getattr(self, name) or "").strip()]
        if missing:
            raise ConfigurationError(
                f"Missing required configuration: {', '.join(name.upper() for name in missing)}"
            )
        if self.tie_break not in (TIE_BREAK_CONTESTANT_NUMBER, TIE_BREAK_INPUT_ORDER):
            raise ConfigurationError(
                f"TIE_BREAK must be '{TIE_BREAK_CONTESTANT_NUMBER}' or '{TIE_BREAK_INPUT_ORDER}'"
            )
        return self

    def as_dict(self) -> Dict[str, Any]:
        """Settings without secrets, for diagnostics."""
        return {
            "database_backend": self.database_url.split(":", 1)[0],
            "access_token_expire_minutes": self.access_token_expire_minutes,
            "log_level": self.log_level,
            "sql_echo": self.sql_echo,
            "tie_break": self.tie_break,
            "login_rate_limit": self.login_rate_limit,
        }


# Singleton instance for easy importing
settings = Settings()
