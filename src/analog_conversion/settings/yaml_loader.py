"""YAML loader for analog conversion configuration files."""
from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from analog_conversion.core.exceptions import ConfigurationError

CONFIG_FILE_NAME = "analog.yaml"
_SEARCH_DEPTH = 5


def find_analog_yaml(start_path: Path | None = None) -> Path | None:
    """Find analog.yaml by searching up from start_path.

    Args:
        start_path: Starting path to search from. If None, uses current working directory.

    Returns:
        Path to analog.yaml if found, None otherwise.
    """
    if start_path is None:
        start_path = Path.cwd()

    current = Path(start_path).resolve()
    for _ in range(_SEARCH_DEPTH):
        yaml_path = current / CONFIG_FILE_NAME
        if yaml_path.exists():
            return yaml_path
        parent = current.parent
        if parent == current:  # Reached root
            break
        current = parent

    return None


def load_analog_yaml(yaml_path: Path | None = None) -> dict[str, Any]:
    """Load analog.yaml configuration.

    If yaml_path is not given, the file is searched for from the current
    working directory, then at the container path ``/app/analog.yaml``.

    Returns:
        Parsed mapping, empty dict if no file was found or the file is empty.

    Raises:
        ConfigurationError: the file exists but is not valid YAML or not a mapping.
    """
    if yaml_path is None:
        yaml_path = find_analog_yaml()
    if yaml_path is None:
        container_path = Path("/app") / CONFIG_FILE_NAME
        yaml_path = container_path if container_path.exists() else None
    if yaml_path is None or not yaml_path.exists():
        return {}

    try:
        with yaml_path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {yaml_path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{yaml_path} must contain a mapping at top level")
    return data
