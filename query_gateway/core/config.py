# query_gateway/core/config.py
"""Environment-driven settings for the query gateway."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

from query_gateway import __version__

load_dotenv()

HARD_PAGE_SIZE_CEILING = 1000


@dataclass(frozen=True)
class Settings:
    database_url: str
    data_platform_url: str
    application_id: str
    query_max_page_size: int
    date_placeholder: str
    api_version: str
    log_level: str


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logging.getLogger(__name__).warning(f"Ignoring non-integer {name}={raw!r}; using {default}")
        return default


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Settings read once per process from the environment (and .env)."""
    max_page_size = _int_env("QUERY_MAX_PAGE_SIZE", HARD_PAGE_SIZE_CEILING)
    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./query_gateway.db"),
        data_platform_url=os.getenv("DATA_PLATFORM_URL", "sqlite:///./query_gateway_data.db"),
        application_id=os.getenv("APPLICATION_ID", "Unknown"),
        query_max_page_size=max(1, min(max_page_size, HARD_PAGE_SIZE_CEILING)),
        date_placeholder=os.getenv("DATE_PLACEHOLDER", "?"),
        api_version=os.getenv("QUERY_API_VERSION", __version__),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
