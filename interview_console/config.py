# interview_console/config.py
"""
Console configuration.

Values come from the environment (a local `.env` file is loaded first).
The backend base URL is the only required setting; every other value has a
working default.
"""
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from interview_console.errors import ConfigurationError

load_dotenv()


DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_POLL_MAX_ATTEMPTS = 30
DEFAULT_MAX_CONCURRENT_REQUESTS = 4
DEFAULT_HUMAN_EDIT_MODEL = "gpt-5.1-human-edit"
DEFAULT_USER_PASSWORD = "indore"
DEFAULT_ADMIN_PASSWORD = "saas"
DEFAULT_LOG_LEVEL = "INFO"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw and raw.strip().isdigit() else default


@dataclass
class Settings:
    api_base_url: str = ""
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    poll_max_attempts: int = DEFAULT_POLL_MAX_ATTEMPTS
    max_concurrent_requests: int = DEFAULT_MAX_CONCURRENT_REQUESTS
    human_edit_model: str = DEFAULT_HUMAN_EDIT_MODEL
    user_password: str = DEFAULT_USER_PASSWORD
    admin_password: str = DEFAULT_ADMIN_PASSWORD
    log_level: str = DEFAULT_LOG_LEVEL
    log_file: Optional[str] = None

    def require_base_url(self) -> str:
        """Return the base URL without a trailing slash, or fail before any request is made."""
        base = (self.api_base_url or "").strip().rstrip("/")
        if not base:
            raise ConfigurationError(
                "Backend base URL is not configured. Set INTERVIEW_API_BASE in the environment or your .env file."
            )
        return base


def get_settings() -> Settings:
    return Settings(
        api_base_url=os.getenv("INTERVIEW_API_BASE", ""),
        request_timeout=_env_float("INTERVIEW_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
        poll_interval=_env_float("INTERVIEW_POLL_INTERVAL", DEFAULT_POLL_INTERVAL),
        poll_max_attempts=_env_int("INTERVIEW_POLL_MAX_ATTEMPTS", DEFAULT_POLL_MAX_ATTEMPTS),
        max_concurrent_requests=max(1, _env_int("INTERVIEW_MAX_CONCURRENT_REQUESTS", DEFAULT_MAX_CONCURRENT_REQUESTS)),
        human_edit_model=os.getenv("INTERVIEW_HUMAN_EDIT_MODEL", DEFAULT_HUMAN_EDIT_MODEL),
        user_password=os.getenv("INTERVIEW_USER_PASSWORD", DEFAULT_USER_PASSWORD),
        admin_password=os.getenv("INTERVIEW_ADMIN_PASSWORD", DEFAULT_ADMIN_PASSWORD),
        log_level=os.getenv("INTERVIEW_LOG_LEVEL", DEFAULT_LOG_LEVEL),
        log_file=os.getenv("INTERVIEW_LOG_FILE") or None,
    )


def get_default_config(settings: Optional[Settings] = None):
    """Non-secret view of the active settings, shown in the console sidebar."""
    settings = settings or get_settings()
    return {
        "base_url_set": bool(settings.api_base_url.strip()),
        "base_url": settings.api_base_url or None,
        "request_timeout": settings.request_timeout,
        "poll_interval": settings.poll_interval,
        "poll_max_attempts": settings.poll_max_attempts,
        "max_concurrent_requests": settings.max_concurrent_requests,
    }
