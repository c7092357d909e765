"""
Runtime configuration for the ingestion and digest jobs.

Settings come from data/pipeline.yaml, with a couple of environment variable
overrides for scheduled runs.
"""

import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from food_alerts.constants import (
    CONFIG_PATH,
    DB_NAME,
    DEFAULT_PAGE_LIMIT,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    RASFF_FEED_URL,
    RASFF_LINK_BASE_URL,
)
from util.logging_util import setup_logger

logger = setup_logger(__name__)

PAGE_LIMIT_ENV = "INGEST_PAGE_LIMIT"
DATABASE_URL_ENV = "FOOD_ALERTS_DATABASE_URL"


@dataclass
class PipelineConfig:
    """Settings shared by the ingestion and digest jobs."""
    feed_url: str = RASFF_FEED_URL
    page_limit: int = DEFAULT_PAGE_LIMIT
    request_timeout: int = DEFAULT_REQUEST_TIMEOUT_SECONDS
    link_base_url: str = RASFF_LINK_BASE_URL
    database_url: str = f"sqlite:///{DB_NAME}"


def _apply_env_overrides(config: PipelineConfig) -> PipelineConfig:
    page_limit = os.environ.get(PAGE_LIMIT_ENV)
    if page_limit:
        try:
            config.page_limit = int(page_limit)
        except ValueError:
            logger.warning(f"Ignoring non-integer {PAGE_LIMIT_ENV}={page_limit!r}")

    database_url = os.environ.get(DATABASE_URL_ENV)
    if database_url:
        config.database_url = database_url

    return config


def load_config(config_path: Path = CONFIG_PATH) -> PipelineConfig:
    """Load the pipeline configuration from YAML, falling back to defaults."""
    config = PipelineConfig()

    if not config_path.exists():
        logger.warning(f"Pipeline config not found at {config_path}, using defaults")
        return _apply_env_overrides(config)

    with open(config_path, "r") as f:
        data = yaml.safe_load(f) or {}

    feed = data.get("feed", {}) or {}
    links = data.get("links", {}) or {}
    database = data.get("database", {}) or {}

    config.feed_url = feed.get("url", config.feed_url)
    config.page_limit = int(feed.get("page_limit", config.page_limit))
    config.request_timeout = int(feed.get("request_timeout", config.request_timeout))
    config.link_base_url = links.get("base_url", config.link_base_url)
    config.database_url = database.get("url", config.database_url)

    return _apply_env_overrides(config)
