"""
YAML-driven configuration and logging setup.

Example file:

    warehouse:
      table: flows
    dashboard:
      bucket_minutes: 60
      flow_limit: 1000
      top_talkers_limit: 10
    filters:
      validate_custom: true
    logging:
      level: INFO
"""

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, TextIO

import yaml

from .errors import ConfigError
from .predicate import is_valid_column_name

CONFIG_ENV_VAR = 'FLOW_QUERY_CONFIG'

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    """Runtime settings.

    Attributes:
        table: Name of the flow table in the warehouse
        bucket_minutes: Default timeline bucket size
        flow_limit: Default page size for flow listings
        top_talkers_limit: Number of top talkers to return
        validate_custom: Reject unsafe custom filters at the API/CLI edge
        log_level: Root log level name
    """
    table: str = 'flows'
    bucket_minutes: int = 60
    flow_limit: int = 1000
    top_talkers_limit: int = 10
    validate_custom: bool = True
    log_level: str = 'INFO'

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> 'Settings':
        """Build settings from a parsed YAML document.

        Raises:
            ConfigError: If a section or value has the wrong type
        """
        sections = {}
        for name in ('warehouse', 'dashboard', 'filters', 'logging'):
            section = config.get(name) or {}
            if not isinstance(section, dict):
                raise ConfigError(f"Section '{name}' must be a mapping")
            sections[name] = section

        defaults = cls()
        try:
            settings = cls(
                table=str(sections['warehouse'].get('table', defaults.table)),
                bucket_minutes=int(sections['dashboard'].get('bucket_minutes', defaults.bucket_minutes)),
                flow_limit=int(sections['dashboard'].get('flow_limit', defaults.flow_limit)),
                top_talkers_limit=int(sections['dashboard'].get('top_talkers_limit', defaults.top_talkers_limit)),
                validate_custom=bool(sections['filters'].get('validate_custom', defaults.validate_custom)),
                log_level=str(sections['logging'].get('level', defaults.log_level)).upper(),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid configuration value: {e}") from e

        if not is_valid_column_name(settings.table):
            raise ConfigError(f"Invalid table name: {settings.table}")
        if settings.bucket_minutes <= 0:
            raise ConfigError("bucket_minutes must be positive")
        return settings


def load_settings(config_path: Optional[str] = None) -> Settings:
    """Load settings from YAML.

    The path defaults to the FLOW_QUERY_CONFIG environment variable. A
    missing file yields the defaults.

    Raises:
        ConfigError: If the file is not valid YAML or has the wrong shape
    """
    config_path = config_path or os.environ.get(CONFIG_ENV_VAR)
    if not config_path:
        return Settings()

    path = Path(config_path)
    if not path.exists():
        logger.warning(f"Config file not found, using defaults: {path}")
        return Settings()

    try:
        with open(path, 'r') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse config {path}: {e}") from e

    if config is None:
        return Settings()
    if not isinstance(config, dict):
        raise ConfigError("Config file must contain a mapping")

    settings = Settings.from_dict(config)
    logger.info(f"Loaded configuration from {path}")
    return settings


def configure_logging(level: str = 'INFO', stream: TextIO = sys.stdout) -> None:
    """Send log records to a stream (stdout by default) at the given level."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(stream)],
    )
