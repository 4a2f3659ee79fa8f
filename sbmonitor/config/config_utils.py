"""
Configuration file loading with environment variable substitution.

String values may contain ``${VAR}`` (required) or ``${VAR:default}``
placeholders. A value that is a single placeholder is converted to int, float
or bool when it looks like one, so a Kubernetes environment can set the retry
policy directly:

    ServiceBusConfiguration:
      max_retries: ${SB_MAX_RETRIES:5}
"""

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

import yaml

from sbmonitor.config.settings import ServiceBusConfiguration
from sbmonitor.core.error_handling import ConfigurationError

logger = logging.getLogger(__name__)

SERVICE_BUS_SECTION = "ServiceBusConfiguration"

Scalar = Union[str, int, float, bool]


class ConfigLoader:
    """Reads YAML or JSON files and resolves ``${VAR:default}`` placeholders."""

    ENV_VAR_PATTERN = re.compile(r'\$\{([^}]+)\}')

    _READERS: Dict[str, Callable[[Any], Any]] = {
        ".yaml": yaml.safe_load,
        ".yml": yaml.safe_load,
        ".json": json.load,
    }

    @classmethod
    def load_config(cls, path: Union[str, Path]) -> Any:
        """
        Load a configuration file, picking the parser from its extension.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the format is unsupported, the file is empty or a
                required environment variable is missing
            yaml.YAMLError: If YAML parsing fails
        """
        path = Path(path)
        reader = cls._READERS.get(path.suffix.lower())
        if reader is None:
            raise ValueError(f"Unsupported configuration file format: {path.suffix}")
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, 'r', encoding='utf-8') as f:
            data = reader(f)

        if data is None:
            raise ValueError(f"Configuration file is empty: {path}")
        return cls._process_env_vars(data)

    @classmethod
    def _process_env_vars(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: cls._process_env_vars(value) for key, value in data.items()}
        if isinstance(data, list):
            return [cls._process_env_vars(item) for item in data]
        if isinstance(data, str):
            return cls._substitute_env_var(data)
        return data

    @classmethod
    def _substitute_env_var(cls, value: str) -> Scalar:
        def resolve(match):
            var_name, sep, default = match.group(1).partition(':')
            env_value = os.getenv(var_name.strip())
            if env_value is not None:
                return env_value
            if not sep:
                raise ValueError(f"Required environment variable not set: {var_name.strip()}")
            return default.strip()

        result = cls.ENV_VAR_PATTERN.sub(resolve, value)
        if cls.ENV_VAR_PATTERN.fullmatch(value):
            return cls._convert_value(result)
        return result

    @staticmethod
    def _convert_value(value: str) -> Scalar:
        if value.lower() in ('true', 'false'):
            return value.lower() == 'true'
        for convert in (int, float):
            try:
                return convert(value)
            except ValueError:
                continue
        return value


def load_service_bus_configuration(
    path: Union[str, Path],
    section: str = SERVICE_BUS_SECTION,
    overrides: Optional[Dict[str, Any]] = None,
) -> ServiceBusConfiguration:
    """
    Load and validate the Service Bus configuration from a file.

    The settings may sit at the top level of the file or under ``section``.

    Args:
        path: Path to a YAML or JSON configuration file
        section: Name of the section holding the Service Bus settings
        overrides: Values applied on top of the file contents

    Returns:
        Validated ServiceBusConfiguration

    Raises:
        ConfigurationError: If the file cannot be loaded or the values are invalid
    """
    try:
        data = ConfigLoader.load_config(path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.error(f"Failed to load configuration file {path}: {e}")
        raise ConfigurationError(
            f"Unable to load configuration from {path}: {e}",
            component="configuration",
            context={"path": str(path)},
        ) from e

    if isinstance(data, dict) and section in data:
        data = data[section]
    if overrides:
        data = {**(data or {}), **overrides}

    configuration = ServiceBusConfiguration.from_dict(data)
    logger.info(f"Loaded Service Bus configuration from {path}: {configuration.redacted()}")
    return configuration
