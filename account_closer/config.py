"""
Configuration errors and .env loading shared by the config loader and CLI.
"""
import os
import logging

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """
    Raised when configuration loading or validation fails.

    This exception is raised for:
    - Missing config files (when a path was given explicitly)
    - Invalid YAML syntax
    - Values rejected by the configuration schema
    - Malformed ACCOUNT_CLOSER_* environment overrides
    """
    pass


def load_env_vars(env_path: str) -> bool:
    """
    Load environment variables from a .env file if it exists.

    Args:
        env_path: Path to the .env file

    Returns:
        True if the file was found and loaded, False otherwise
    """
    if not os.path.exists(env_path):
        logger.debug(f"No .env file at {env_path}, skipping")
        return False
    load_dotenv(env_path)
    logger.info(f"Loaded environment variables from {env_path}")
    return True
