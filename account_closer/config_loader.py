"""
Configuration Loader

Loads, parses and validates the YAML configuration file against the
pydantic schema in config_schema.py.

Environment Variable Overrides:
    Configuration values can be overridden using environment variables.
    Naming convention: ACCOUNT_CLOSER_<SECTION>_<KEY> (uppercase, underscores)

    Examples:
        ACCOUNT_CLOSER_PATHS_ACCOUNTS_FILE=/tmp/accounts.csv
        ACCOUNT_CLOSER_POLICY_INACTIVITY_MONTHS=12
        ACCOUNT_CLOSER_LOGGING_CONSOLE=false
        ACCOUNT_CLOSER_CLOSURE_COMMAND="zmprov ma {email} zimbraAccountStatus closed"
"""
import os
import yaml
import logging
from typing import Dict, Any, Optional
from pathlib import Path

from pydantic import ValidationError

from account_closer.config_schema import CloserConfigSchema
from account_closer.config import ConfigError

logger = logging.getLogger(__name__)

ENV_PREFIX = "ACCOUNT_CLOSER_"
DEFAULT_CONFIG_PATH = "config/config.yaml"


class ConfigLoader:
    """
    Configuration loader for account closer configuration files.

    Args:
        config_path: Path to the YAML configuration file

    Raises:
        ConfigError: If the config file is missing, invalid YAML, or validation fails

    Example:
        >>> loader = ConfigLoader('config/config.yaml')
        >>> config = loader.load()
        >>> config.policy.inactivity_months
        6
    """

    SECTION_MAP = {
        'PATHS': 'paths',
        'POLICY': 'policy',
        'CLOSURE': 'closure',
        'LOGGING': 'logging',
    }
    INT_FIELDS = {
        'policy': ['inactivity_months'],
    }
    BOOL_FIELDS = {
        'paths': ['truncate_logs_on_start'],
        'logging': ['console'],
    }
    LIST_FIELDS = {
        'closure': ['command', 'path_prepend'],
    }

    def __init__(self, config_path: str):
        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise ConfigError(f"Configuration file not found: {config_path}")

    @classmethod
    def _apply_env_overrides(cls, config_dict: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply ACCOUNT_CLOSER_<SECTION>_<KEY> environment overrides.

        Args:
            config_dict: Configuration dictionary from YAML (or empty)

        Returns:
            Configuration dictionary with environment variable overrides applied
        """
        overrides_applied = []

        for env_key, env_value in os.environ.items():
            if not env_key.startswith(ENV_PREFIX):
                continue

            parts = env_key[len(ENV_PREFIX):].split('_', 1)
            if len(parts) != 2:
                logger.warning(f"Invalid environment variable format: {env_key} (expected {ENV_PREFIX}<SECTION>_<KEY>)")
                continue

            section_env, key_env = parts
            section = cls.SECTION_MAP.get(section_env)
            if not section:
                logger.warning(f"Unknown configuration section in environment variable: {env_key}")
                continue

            section_dict = config_dict.setdefault(section, {})
            if section_dict is None:
                section_dict = config_dict[section] = {}

            key = key_env.lower()
            section_dict[key] = cls._convert_env_value(key, env_value, section)
            overrides_applied.append(f"{section}.{key}")

        if overrides_applied:
            logger.info(f"Applied {len(overrides_applied)} environment variable overrides: {', '.join(overrides_applied)}")

        return config_dict

    @classmethod
    def _convert_env_value(cls, key: str, value: str, section: str) -> Any:
        """
        Convert environment variable string value to the type the schema expects.

        Raises:
            ConfigError: If an integer field receives a non-integer value
        """
        if key in cls.INT_FIELDS.get(section, []):
            try:
                return int(value)
            except ValueError:
                raise ConfigError(f"Environment variable value for {section}.{key} must be an integer, got: {value}")

        if key in cls.BOOL_FIELDS.get(section, []):
            return value.lower() in ('true', '1', 'yes', 'on')

        if key in cls.LIST_FIELDS.get(section, []):
            if key == 'path_prepend':
                return [part for part in value.split(os.pathsep) if part]
            return value.split()

        return value

    def load(self) -> CloserConfigSchema:
        """
        Load and validate the configuration file.

        Environment variable overrides are applied before validation.

        Raises:
            ConfigError: If YAML parsing or schema validation fails
        """
        logger.info(f"Loading configuration from {self.config_path}")

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"YAML parse error in {self.config_path}: {e}")
        except OSError as e:
            raise ConfigError(f"Error reading configuration file {self.config_path}: {e}")

        if raw_config is None:
            raw_config = {}
        if not isinstance(raw_config, dict):
            raise ConfigError(f"Configuration file {self.config_path} must contain a mapping at the top level")

        return self.load_from_dict(self._apply_env_overrides(raw_config))

    @staticmethod
    def load_from_dict(config_dict: Dict[str, Any]) -> CloserConfigSchema:
        """
        Validate configuration from a dictionary.

        Raises:
            ConfigError: If schema validation fails
        """
        try:
            return CloserConfigSchema(**config_dict)
        except ValidationError as e:
            error_msg = f"Configuration validation failed: {e}"
            logger.error(error_msg)
            raise ConfigError(error_msg) from e


def resolve_config_path(config_path: Optional[str] = None) -> Optional[str]:
    """
    Configuration file a run will read.

    Returns:
        The explicit path, the default config/config.yaml when present, or
        None when built-in defaults apply
    """
    if config_path is not None:
        return config_path
    if Path(DEFAULT_CONFIG_PATH).exists():
        return DEFAULT_CONFIG_PATH
    return None


def load_config(config_path: Optional[str] = None) -> CloserConfigSchema:
    """
    Resolve the effective configuration.

    An explicitly given path must exist. Without one, the default
    config/config.yaml is used when present, otherwise built-in defaults
    (still subject to environment overrides).

    Raises:
        ConfigError: If the configuration cannot be loaded or is invalid
    """
    source = resolve_config_path(config_path)
    if source is not None:
        return ConfigLoader(source).load()

    logger.debug("No configuration file found, using built-in defaults")
    return ConfigLoader.load_from_dict(ConfigLoader._apply_env_overrides({}))
