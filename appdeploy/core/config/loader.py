"""
Configuration loader — reads deploy.yml into the DeployConfig model.

Resolution order for the config file:
    --config flag  >  APPDEPLOY_CONFIG env var  >  deploy.yml beside
    the working directory (walking up)  >  built-in defaults.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml

from appdeploy.core.models.config import DeployConfig

logger = logging.getLogger(__name__)

# Default config filename
DEPLOY_CONFIG_FILE = "deploy.yml"

CONFIG_ENV_VAR = "APPDEPLOY_CONFIG"


class ConfigError(Exception):
    """Raised when deployment configuration is invalid or unreadable."""


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for deploy.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to deploy.yml, or None if not found.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)

    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / DEPLOY_CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def load_config(path: Path | None = None) -> DeployConfig:
    """Load and validate deployment configuration.

    Args:
        path: Explicit path to deploy.yml. If None, searches for one
            and falls back to built-in defaults when nothing is found.

    Returns:
        Validated DeployConfig model.

    Raises:
        ConfigError: If an explicit or discovered file is missing or invalid.
    """
    if path is None:
        path = find_config_file()

    if path is None:
        logger.debug("No %s found, using built-in defaults", DEPLOY_CONFIG_FILE)
        return DeployConfig()

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading deploy config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        config = DeployConfig.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid deploy configuration: {e}") from e

    logger.info("Loaded config for '%s' (%s)", config.app.display_name, config.app.package_id)
    return config
