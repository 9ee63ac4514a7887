"""
Configuration

Settings come from a YAML file, then environment variables override them.
A broken config file never stops a commit: problems are logged as warnings
and defaults are used.

Simple interface:
    settings = load_settings()          # default path, env overrides
    settings.accepts(record) -> bool    # source filter
"""

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from .model import MediaRecord

logger = logging.getLogger(__name__)

APP_NAME = "interactive-commit"
CONFIG_FILENAME = "config.yaml"

ENV_CONFIG = "INTERACTIVE_COMMIT_CONFIG"
ENV_ENABLED = "INTERACTIVE_COMMIT_ENABLED"
ENV_TIMEOUT = "INTERACTIVE_COMMIT_TIMEOUT"

_TRUE_VALUES = ('1', 'true', 'yes', 'on')
_FALSE_VALUES = ('0', 'false', 'no', 'off')

# Display name (lowercase) -> config key
SOURCE_KEYS = {
    'youtube music': 'youtube-music',
    'google chrome': 'chrome',
    'microsoft edge': 'edge',
    'apple music': 'apple-music',
    'windows media player': 'windows-media-player',
    'groove music': 'groove-music',
}


def source_key(source: str) -> str:
    """'YouTube Music' -> 'youtube-music', 'Google Chrome' -> 'chrome'."""
    lowered = source.strip().lower()
    return SOURCE_KEYS.get(lowered, lowered.replace(' ', '-'))


@dataclass
class Settings:
    """User settings with defaults matching a fresh install."""
    enabled: bool = True
    timeout: float = 3.0
    sources: List[str] = field(default_factory=list)  # empty = every source
    commit_format: Optional[str] = None
    refresh_interval: float = 5.0
    show_status: bool = True

    def accepts(self, record: MediaRecord) -> bool:
        """True when the record's source is enabled."""
        if not self.sources:
            return True
        return source_key(record.source) in self.sources


def default_config_path(environ: Optional[Mapping[str, str]] = None) -> Path:
    environ = os.environ if environ is None else environ
    base = environ.get('XDG_CONFIG_HOME') or str(Path.home() / ".config")
    return Path(base) / APP_NAME / CONFIG_FILENAME


def resolve_config_path(
    path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Path:
    """Explicit path, else $INTERACTIVE_COMMIT_CONFIG, else the XDG default."""
    environ = os.environ if environ is None else environ
    if path is not None:
        return Path(path).expanduser()
    if environ.get(ENV_CONFIG):
        return Path(environ[ENV_CONFIG]).expanduser()
    return default_config_path(environ)


# =============================================================================
# COERCION - one helper per value type
# =============================================================================

def _parse_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
    return None


def _parse_seconds(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    return seconds if seconds > 0 else None


def _parse_sources(value: Any) -> Optional[List[str]]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return None
    return [source_key(str(item)) for item in value if str(item).strip()]


def _apply_file_values(settings: Settings, data: Dict[str, Any], path: Path) -> Settings:
    updates: Dict[str, Any] = {}

    parsers = {
        'enabled': _parse_bool,
        'show_status': _parse_bool,
        'timeout': _parse_seconds,
        'refresh_interval': _parse_seconds,
        'sources': _parse_sources,
    }
    for key, parse in parsers.items():
        if key not in data:
            continue
        value = parse(data[key])
        if value is None:
            logger.warning(f"{path}: ignoring invalid {key}: {data[key]!r}")
        else:
            updates[key] = value

    if 'commit_format' in data:
        template = data['commit_format']
        if template is None or (isinstance(template, str) and template.strip()):
            updates['commit_format'] = template
        else:
            logger.warning(f"{path}: ignoring invalid commit_format: {template!r}")

    unknown = set(data) - set(parsers) - {'commit_format'}
    if unknown:
        logger.warning(f"{path}: unknown keys {sorted(map(str, unknown))}")

    return replace(settings, **updates)


def _apply_env_overrides(settings: Settings, environ: Mapping[str, str]) -> Settings:
    updates: Dict[str, Any] = {}

    if ENV_ENABLED in environ:
        enabled = _parse_bool(environ[ENV_ENABLED])
        if enabled is None:
            logger.warning(f"Ignoring invalid {ENV_ENABLED}={environ[ENV_ENABLED]!r}")
        else:
            updates['enabled'] = enabled

    if ENV_TIMEOUT in environ:
        timeout = _parse_seconds(environ[ENV_TIMEOUT])
        if timeout is None:
            logger.warning(f"Ignoring invalid {ENV_TIMEOUT}={environ[ENV_TIMEOUT]!r}")
        else:
            updates['timeout'] = timeout

    return replace(settings, **updates) if updates else settings


def load_settings(
    path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """
    Load settings from YAML, then apply environment overrides.

    Args:
        path: Config file (default: $XDG_CONFIG_HOME/interactive-commit/config.yaml)
        environ: Environment mapping (default: os.environ)

    Returns:
        Settings, never raises
    """
    environ = os.environ if environ is None else environ
    path = resolve_config_path(path, environ)
    settings = Settings()

    if not path.exists():
        logger.debug(f"No config file at {path}")
        return _apply_env_overrides(settings, environ)

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Failed to load config {path}: {e}")
        return _apply_env_overrides(settings, environ)

    if data is None:
        data = {}
    if not isinstance(data, dict):
        logger.warning(f"Config {path} is not a mapping; using defaults")
        data = {}

    settings = _apply_file_values(settings, data, path)
    logger.debug(f"Loaded config from {path}")
    return _apply_env_overrides(settings, environ)
