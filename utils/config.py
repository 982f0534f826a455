"""
Simple config loader for backend components.
Reads the TOML config shipped next to the settings module.

@.architecture
Incoming: config/cache.toml, config/settings.py --- {TOML file, load_config calls}
Processing: load_config(), get_fallback_config(), get_section() --- {3 jobs: config_loading, fallback_generation, section_extraction}
Outgoing: config/settings.py --- {Dict[str, Any] config data}
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import toml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path(__file__).parent.parent / "config" / "cache.toml"


def load_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load configuration from the TOML file.

    The path can be overridden with ``CACHE_CONFIG_FILE``. A missing or
    unreadable file falls back to built-in defaults.
    """
    config_file = path or Path(os.getenv("CACHE_CONFIG_FILE", str(DEFAULT_CONFIG_FILE)))
    try:
        with open(config_file, 'r') as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as e:
        logger.warning(f"Failed to load config from {config_file}: {e}")
        return get_fallback_config()


def get_fallback_config() -> Dict[str, Any]:
    """Fallback configuration if the TOML file can't be loaded."""
    return {
        "REDIS": {
            "url": "redis://localhost:6379",
            "require_bloom": True,
        },
        "CACHE": {
            "sliding_window_seconds": 300,
            "transient_pattern": "cache:temp:*",
            "transient_marker": "temp",
            "session_pattern": "cache:session:*",
            "session_default_ttl": 3600,
            "cleanup_interval_ms": 60000,
            "auto_cleanup_enabled": True,
        },
    }


def get_section(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    """Return a TOML table as a dict (empty if absent)."""
    section = config.get(name, {})
    return dict(section) if isinstance(section, dict) else {}
