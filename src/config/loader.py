"""YAML configuration loader with environment variable overrides.

Configuration is loaded in layers (later layers override earlier):

  1. config/config.yaml  -- static defaults checked into the repo
  2. .env file           -- local developer overrides (not committed)
  3. Environment vars    -- set at deploy time

``load_config()`` reads the YAML file first, then deep-merges the
environment-derived values from :class:`Settings` on top.  The crawl URL
list is the one exception: the YAML list wins unless ``CRAWL_URLS`` is set
explicitly in the environment, so that editing the checked-in file is
enough to change what the scheduled sweep visits.
"""

import os
from pathlib import Path

import yaml

from src.config.settings import Settings


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Args:
        path: Path to the YAML configuration file.  A missing file is
              treated as an empty mapping.
        settings: Pre-built settings; constructed from the environment
                  when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    settings = settings or Settings()
    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
        },
        "chunking": {
            "chunk_size": settings.chunk_size,
            "overlap": settings.chunk_overlap,
            "boundary": settings.chunk_boundary,
        },
        "store": {
            "db_path": settings.chunk_db_path,
            "table": settings.chunk_table,
            "batch_limit": settings.store_batch_limit,
        },
        "crawl": {
            "enabled": settings.crawl_enabled,
            "interval_hours": settings.crawl_interval_hours,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    yaml_urls = (yaml_config.get("crawl") or {}).get("urls")
    if "CRAWL_URLS" in os.environ or not yaml_urls:
        env_overrides["crawl"]["urls"] = list(settings.crawl_urls)

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def resolve_crawl_urls(settings: Settings) -> list[str]:
    """Return the de-duplicated crawl URL list, preserving configured order."""
    config = load_config(settings.config_path, settings=settings)
    urls = config.get("crawl", {}).get("urls") or []
    seen: set[str] = set()
    ordered: list[str] = []
    for url in urls:
        url = str(url).strip()
        if url and url not in seen:
            seen.add(url)
            ordered.append(url)
    return ordered


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
