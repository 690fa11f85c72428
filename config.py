"""
Application configuration

Values come from environment variables (optionally loaded from a .env file)
and are read when the app is created, so tests can set them beforehand.
Every key has a development default; startup validation flags the unsafe ones.
"""

import os
import re
import logging
from typing import Any, Dict

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///andthen.db"
DEFAULT_JWT_SECRET = "andthen-core-default-secret-change-in-production"
DEFAULT_LOCAL_USER_EMAIL = "local@andthen.core"
SQLITE_BEGIN_MODES = ("DEFERRED", "IMMEDIATE", "EXCLUSIVE")

_DURATION_UNITS = {"s": 1, "m": 60, "h": 3600, "d": 86400, "w": 604800}
_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhdw]?)\s*$")


def parse_duration(value: Any, default: int) -> int:
    """
    Parse a token lifetime such as "7d", "12h", "30m", "45s" or "3600" into seconds.

    Invalid values fall back to ``default`` with a warning.
    """
    if value is None or value == "":
        return default
    if isinstance(value, int):
        return value
    match = _DURATION_RE.match(str(value).lower())
    if not match:
        logger.warning(f"Invalid duration {value!r}, using default of {default}s")
        return default
    amount, unit = match.groups()
    return int(amount) * _DURATION_UNITS[unit or "s"]


def normalize_database_url(url: str) -> str:
    """
    Accept the short ``sqlite:./andthen.db`` form next to regular SQLAlchemy URLs.
    """
    if url.startswith("sqlite:") and not url.startswith("sqlite://"):
        path = url[len("sqlite:"):]
        return f"sqlite:///{path}"
    return url


def _env_bool(key: str, default: bool = False) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_config() -> Dict[str, Any]:
    """Build the Flask config mapping from the environment."""
    load_dotenv()

    jwt_secret = os.getenv("JWT_SECRET", DEFAULT_JWT_SECRET)
    begin_mode = os.getenv("SQLITE_BEGIN_MODE", "IMMEDIATE").upper()
    if begin_mode not in SQLITE_BEGIN_MODES:
        logger.warning(f"Unknown SQLITE_BEGIN_MODE {begin_mode!r}, using IMMEDIATE")
        begin_mode = "IMMEDIATE"

    return {
        "ENV_NAME": os.getenv("FLASK_ENV", "development"),
        "SECRET_KEY": os.getenv("SECRET_KEY", jwt_secret),
        "SQLALCHEMY_DATABASE_URI": normalize_database_url(os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)),
        "SQLALCHEMY_TRACK_MODIFICATIONS": False,
        "SQLITE_BEGIN_MODE": begin_mode,
        "AUTO_CREATE_SCHEMA": _env_bool("AUTO_CREATE_SCHEMA", True),
        "JWT_SECRET": jwt_secret,
        "JWT_ALGORITHM": "HS256",
        "JWT_EXPIRES_IN": parse_duration(os.getenv("JWT_EXPIRES_IN"), 7 * 86400),
        "LOCAL_USER_MODE": _env_bool("LOCAL_USER_MODE", False),
        "LOCAL_USER_EMAIL": os.getenv("LOCAL_USER_EMAIL", DEFAULT_LOCAL_USER_EMAIL),
        "LOG_LEVEL": os.getenv("LOG_LEVEL", "INFO").upper(),
    }
