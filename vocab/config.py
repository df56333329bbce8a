"""
Configuration for the vocab client and server.
All knobs come from the environment, optionally seeded from a shared .env file.
"""

import os
import logging
from dataclasses import dataclass
from dotenv import load_dotenv, find_dotenv

# Load shared .env (prefer project root) without overriding existing env
_ENV_PATH = find_dotenv(usecwd=True)
if _ENV_PATH:
    load_dotenv(_ENV_PATH, override=False)

logger = logging.getLogger(__name__)


def env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        logger.warning(f"Invalid integer for {name}; using default {default}")
        return default


def env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        logger.warning(f"Invalid number for {name}; using default {default}")
        return default


def env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass(frozen=True)
class Settings:
    api_url: str
    client_state_file: str
    db_path: str
    users_file: str
    cache_ttl_seconds: float
    cache_sweep_interval_seconds: float
    health_check_interval_seconds: float
    max_consecutive_failures: int
    session_timeout_hours: int
    session_cleanup_interval_secs: float
    enable_session_cleanup: bool
    enable_cloudwatch: bool
    environment: str
    http_timeout_seconds: float

    @classmethod
    def from_env(cls) -> "Settings":
        """Snapshot the current environment."""
        return cls(
            api_url=os.getenv('VOCAB_API_URL', 'http://localhost:8000').rstrip('/'),
            client_state_file=os.getenv('VOCAB_CLIENT_STATE_FILE', 'client_state.json'),
            db_path=os.getenv('VOCAB_DB_PATH', 'vocab.db'),
            users_file=os.getenv('USERS_FILE', 'users.json'),
            cache_ttl_seconds=env_float('CACHE_TTL_SECONDS', 5 * 60),
            cache_sweep_interval_seconds=env_float('CACHE_SWEEP_INTERVAL_SECONDS', 10 * 60),
            health_check_interval_seconds=env_float('HEALTH_CHECK_INTERVAL_SECONDS', 5 * 60),
            max_consecutive_failures=env_int('MAX_CONSECUTIVE_FAILURES', 3),
            session_timeout_hours=env_int('SESSION_TIMEOUT_HOURS', 24),
            session_cleanup_interval_secs=env_float('SESSION_CLEANUP_INTERVAL_SECS', 3600),
            enable_session_cleanup=env_flag('ENABLE_SESSION_CLEANUP', True),
            enable_cloudwatch=env_flag('ENABLE_CLOUDWATCH', False),
            environment=os.getenv('ENVIRONMENT', 'Development'),
            http_timeout_seconds=env_float('HTTP_TIMEOUT_SECONDS', 15),
        )
