"""
Runtime configuration for the reconciliation service.

Defaults live at module level; ``ReconciliationConfig.from_env`` overlays
environment variables and the CLI overlays its own arguments on top.
"""

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

DEFAULT_CACHE_TTL_SECONDS = 300
DEFAULT_TIMEZONE = "Europe/Zurich"
DEFAULT_SOURCE_TAG = "[OD]"
DEFAULT_WINDOW_DAYS = 30
DEFAULT_REQUEST_TIMEOUT = 30
DEFAULT_PAGE_SIZE = 100
DEFAULT_CALENDAR_API_URL = "https://www.googleapis.com/calendar/v3"

ENV_PREFIX = "INTAKE_"


def _env_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value == '':
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class ReconciliationConfig:
    """Settings shared by the service, the HTTP clients and the CLI."""
    pocketbase_url: str = ''
    pocketbase_token: str = ''
    calendar_id: str = ''
    calendar_token: str = ''
    calendar_api_url: str = DEFAULT_CALENDAR_API_URL
    source_tag: str = DEFAULT_SOURCE_TAG
    timezone: str = DEFAULT_TIMEZONE
    window_days: int = DEFAULT_WINDOW_DAYS
    cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS
    request_timeout: int = DEFAULT_REQUEST_TIMEOUT
    page_size: int = DEFAULT_PAGE_SIZE
    verify_ssl: bool = True

    def __post_init__(self):
        """Validate numeric settings."""
        if self.cache_ttl_seconds < 0:
            raise ValueError("cache_ttl_seconds must be >= 0")
        if self.window_days < 0:
            raise ValueError("window_days must be >= 0")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be > 0")
        if self.page_size < 1:
            raise ValueError("page_size must be >= 1")

    @property
    def calendar_configured(self) -> bool:
        return bool(self.calendar_id)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'ReconciliationConfig':
        """
        Build a configuration from INTAKE_* environment variables.

        Recognized: INTAKE_POCKETBASE_URL, INTAKE_POCKETBASE_TOKEN,
        INTAKE_CALENDAR_ID, INTAKE_CALENDAR_TOKEN, INTAKE_CALENDAR_API_URL,
        INTAKE_SOURCE_TAG, INTAKE_TIMEZONE, INTAKE_WINDOW_DAYS,
        INTAKE_CACHE_TTL, INTAKE_REQUEST_TIMEOUT, INTAKE_PAGE_SIZE,
        INTAKE_VERIFY_SSL.
        """
        env = os.environ if environ is None else environ

        def get(name: str, default: str = '') -> str:
            return env.get(ENV_PREFIX + name, default)

        return cls(
            pocketbase_url=get('POCKETBASE_URL').rstrip('/'),
            pocketbase_token=get('POCKETBASE_TOKEN'),
            calendar_id=get('CALENDAR_ID'),
            calendar_token=get('CALENDAR_TOKEN'),
            calendar_api_url=get('CALENDAR_API_URL', DEFAULT_CALENDAR_API_URL).rstrip('/'),
            source_tag=get('SOURCE_TAG', DEFAULT_SOURCE_TAG),
            timezone=get('TIMEZONE', DEFAULT_TIMEZONE),
            window_days=int(get('WINDOW_DAYS', str(DEFAULT_WINDOW_DAYS))),
            cache_ttl_seconds=int(get('CACHE_TTL', str(DEFAULT_CACHE_TTL_SECONDS))),
            request_timeout=int(get('REQUEST_TIMEOUT', str(DEFAULT_REQUEST_TIMEOUT))),
            page_size=int(get('PAGE_SIZE', str(DEFAULT_PAGE_SIZE))),
            verify_ssl=_env_bool(env.get(ENV_PREFIX + 'VERIFY_SSL'), True)
        )

    def with_overrides(self, **overrides) -> 'ReconciliationConfig':
        """Return a copy with the non-None overrides applied."""
        values = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **values)
