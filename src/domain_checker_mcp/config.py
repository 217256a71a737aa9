"""
Configuration for Domain Checker MCP.

Lookup tuning (retry/backoff, timeouts, classification thresholds) is read
from these sources:

Lookup order:
1. Environment variables (DOMAIN_CHECKER_*)
2. Config file (~/.config/domain-checker-mcp/config.json)
3. Built-in defaults
"""

import json
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path

logger = logging.getLogger(__name__)

ENV_PREFIX = "DOMAIN_CHECKER_"


@dataclass(frozen=True)
class LookupConfig:
    """Tuning values for the lookup engine."""

    # Backoff retrier
    max_retries: int = 3
    initial_delay: float = 1.0  # seconds
    backoff_multiplier: float = 2.0

    # Legacy (WHOIS) classification: shorter bodies without "registrar" are
    # treated as terse "not found" templates
    short_response_threshold: int = 100

    # Network timeouts, seconds
    rdap_timeout: float = 10.0
    whois_timeout: float = 10.0

    # Batch orchestrator bounds
    default_concurrency: int = 4
    max_concurrency: int = 10

    def backoff_delay(self, attempt: int) -> float:
        """Delay before retrying after the given 0-based attempt."""
        return self.initial_delay * (self.backoff_multiplier ** attempt)


def get_config_dir() -> Path:
    """Get the config directory for this app."""
    if os.name == 'nt':  # Windows
        base = Path(os.environ.get('APPDATA', Path.home()))
    else:  # macOS, Linux
        base = Path(os.environ.get('XDG_CONFIG_HOME', Path.home() / '.config'))

    config_dir = base / 'domain-checker-mcp'
    return config_dir


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / 'config.json'


def load_config() -> dict:
    """Load the JSON config file, returning {} if missing or invalid."""
    config_file = get_config_file()
    try:
        if config_file.exists():
            config = json.loads(config_file.read_text())
            if isinstance(config, dict):
                return config
            logger.warning("Ignoring config file %s: not a JSON object", config_file)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Ignoring config file %s: %s", config_file, e)
    return {}


def _coerce(value, default):
    """Convert a raw env/config value to the type of its default."""
    try:
        if isinstance(default, int):
            return int(value)
        return float(value)
    except (TypeError, ValueError):
        return None


def get_lookup_config() -> LookupConfig:
    """
    Build a LookupConfig from available sources.

    Lookup order:
    1. Environment variable (DOMAIN_CHECKER_<FIELD>, e.g. DOMAIN_CHECKER_MAX_RETRIES)
    2. Config file key (e.g. "max_retries")
    3. Default
    """
    file_config = load_config()
    values = {}

    for f in fields(LookupConfig):
        default = f.default
        raw = os.environ.get(ENV_PREFIX + f.name.upper())
        source = "environment"
        if raw is None:
            raw = file_config.get(f.name)
            source = "config file"
        if raw is None:
            continue

        value = _coerce(raw, default)
        if value is None:
            logger.warning("Invalid %s value for %s: %r (using %r)", source, f.name, raw, default)
            continue
        values[f.name] = value

    return LookupConfig(**values)


def describe_config(config: LookupConfig) -> dict:
    """Return the effective configuration as a plain dict (for display purposes)."""
    return {f.name: getattr(config, f.name) for f in fields(config)}
