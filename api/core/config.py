"""
Process configuration.

Loaded once from the environment when the app is built and passed to the
services that need it. Nothing below `core/` should read `os.environ`.
"""

from __future__ import annotations

import logging
import math
import os
import re
from dataclasses import dataclass, field

DEFAULT_JWT_ALG = "HS256"
DEFAULT_JWT_EXPIRES_IN = "7d"
DEFAULT_JWT_EXPIRES_IN_S = 7 * 24 * 60 * 60
DEFAULT_BCRYPT_COST = 12
MIN_BCRYPT_COST = 8
MAX_BCRYPT_COST = 15
DEFAULT_IPINFO_BASE_URL = "https://api.ipinfo.io/lite"
DEFAULT_IPINFO_TIMEOUT_S = 5.0

PRODUCTION_ENVS = {"production", "prod"}

logger = logging.getLogger(__name__)

_DURATION_RE = re.compile(r"^(-?\d*\.?\d+)\s*([a-z]*)$", re.IGNORECASE)

_DURATION_UNITS_S: dict[str, float] = {
    "": 1.0,
    "ms": 0.001,
    "msec": 0.001,
    "msecs": 0.001,
    "millisecond": 0.001,
    "milliseconds": 0.001,
    "s": 1.0,
    "sec": 1.0,
    "secs": 1.0,
    "second": 1.0,
    "seconds": 1.0,
    "m": 60.0,
    "min": 60.0,
    "mins": 60.0,
    "minute": 60.0,
    "minutes": 60.0,
    "h": 3600.0,
    "hr": 3600.0,
    "hrs": 3600.0,
    "hour": 3600.0,
    "hours": 3600.0,
    "d": 86400.0,
    "day": 86400.0,
    "days": 86400.0,
    "w": 604800.0,
    "week": 604800.0,
    "weeks": 604800.0,
    "y": 31557600.0,
    "yr": 31557600.0,
    "yrs": 31557600.0,
    "year": 31557600.0,
    "years": 31557600.0,
}


def parse_duration(raw: str) -> int | None:
    """
    Parse a time span such as "7d", "12h", "90 minutes" or "3600" into seconds.

    A bare number is seconds. Returns None when the value is not understood.
    """
    match = _DURATION_RE.match((raw or "").strip())
    if match is None:
        return None
    amount, unit = match.groups()
    factor = _DURATION_UNITS_S.get(unit.lower())
    if factor is None:
        return None
    return int(float(amount) * factor)


def _env_str(name: str, default: str) -> str:
    return os.environ.get(name, default).strip() or default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def bcrypt_cost_or_default(cost: int | None) -> int:
    if cost is None or cost < MIN_BCRYPT_COST or cost > MAX_BCRYPT_COST:
        return DEFAULT_BCRYPT_COST
    return cost


def jwt_expires_in_or_default(raw: str | None) -> int:
    seconds = parse_duration(raw or DEFAULT_JWT_EXPIRES_IN)
    if seconds is None or seconds <= 0:
        logger.warning("jwt_expires_in_invalid value=%r fallback=%s", raw, DEFAULT_JWT_EXPIRES_IN)
        return DEFAULT_JWT_EXPIRES_IN_S
    return seconds


def ipinfo_timeout_or_default(timeout_s: float | None) -> float:
    if timeout_s is None or not math.isfinite(timeout_s) or timeout_s <= 0:
        logger.warning("ipinfo_timeout_invalid value=%r fallback=%s", timeout_s, DEFAULT_IPINFO_TIMEOUT_S)
        return DEFAULT_IPINFO_TIMEOUT_S
    return timeout_s


@dataclass(frozen=True)
class Settings:
    environment: str = "development"
    database_url: str | None = None
    jwt_secret: str | None = None
    jwt_algorithm: str = DEFAULT_JWT_ALG
    jwt_expires_in_s: int = DEFAULT_JWT_EXPIRES_IN_S
    bcrypt_cost: int = DEFAULT_BCRYPT_COST
    ipinfo_token: str | None = None
    ipinfo_base_url: str = DEFAULT_IPINFO_BASE_URL
    ipinfo_timeout_s: float = DEFAULT_IPINFO_TIMEOUT_S
    cors_origins: tuple[str, ...] = field(default_factory=tuple)
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in PRODUCTION_ENVS

    @classmethod
    def from_env(cls) -> Settings:
        cors_raw = os.environ.get("CORS_ORIGIN", "")
        return cls(
            environment=_env_str("APP_ENV", "development"),
            database_url=os.environ.get("DATABASE_URL", "").strip() or None,
            jwt_secret=os.environ.get("JWT_SECRET", "").strip() or None,
            jwt_algorithm=_env_str("JWT_ALG", DEFAULT_JWT_ALG),
            jwt_expires_in_s=jwt_expires_in_or_default(os.environ.get("JWT_EXPIRES_IN", "").strip() or None),
            bcrypt_cost=bcrypt_cost_or_default(_env_int("BCRYPT_COST", DEFAULT_BCRYPT_COST)),
            ipinfo_token=os.environ.get("IPINFO_TOKEN", "").strip() or None,
            ipinfo_base_url=_env_str("IPINFO_BASE_URL", DEFAULT_IPINFO_BASE_URL),
            ipinfo_timeout_s=ipinfo_timeout_or_default(_env_float("IPINFO_TIMEOUT_S", DEFAULT_IPINFO_TIMEOUT_S)),
            cors_origins=tuple(o.strip() for o in cors_raw.split(",") if o.strip()),
            log_level=_env_str("LOG_LEVEL", "INFO").upper(),
        )
