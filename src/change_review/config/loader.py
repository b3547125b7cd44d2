"""Configuration loader with YAML parsing and environment variable substitution."""

import os
import re
from pathlib import Path

import structlog
import yaml

from ..utils.logging import LogEventNames
from .schema import ReviewConfig

log = structlog.get_logger()


def substitute_env_vars(text: str) -> str:
    """
    Replace ${VAR_NAME} patterns with environment variable values.

    Args:
        text: Text containing ${VAR_NAME} patterns

    Returns:
        Text with environment variables substituted

    Raises:
        ValueError: If a referenced environment variable is not found
    """

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        value = os.environ.get(var_name)
        if value is None:
            raise ValueError(f"Environment variable {var_name} not found")
        return value

    return re.sub(r"\$\{([^}]+)\}", replacer, text)


def load_config(path: Path | None = None) -> ReviewConfig:
    """
    Load configuration from a YAML file with environment variable substitution.

    Without a path, defaults apply and only ``CHANGE_REVIEW_*`` environment
    variables are read.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated ReviewConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If environment variables are missing or config is invalid
        ValidationError: If config doesn't match schema
    """
    if path is None:
        config = ReviewConfig()
        validate_config(config)
        return config

    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with path.open() as f:
        raw_yaml = f.read()

    yaml_with_env = substitute_env_vars(raw_yaml)

    config_dict = yaml.safe_load(yaml_with_env) or {}
    if not isinstance(config_dict, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")

    config = ReviewConfig.model_validate(config_dict)

    validate_config(config)

    log.debug(LogEventNames.CONFIG_LOADED, path=str(path))
    return config


def validate_config(config: ReviewConfig) -> None:
    """
    Perform additional cross-field validation.

    Args:
        config: Configuration to validate

    Raises:
        ValueError: If the repository root is unusable
    """
    repo_root = config.analysis.repo_root
    if repo_root is not None and not repo_root.is_dir():
        raise ValueError(f"analysis.repo_root is not a directory: {repo_root}")
