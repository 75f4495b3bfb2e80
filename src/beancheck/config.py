"""Configuration loading and logging setup.

``load_config`` reads a ``VerifierConfig`` from a YAML mapping;
``configure_logging`` attaches a console handler to the ``beancheck``
logger.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError
import yaml

from beancheck.errors import ConfigError
from beancheck.models import VerifierConfig

_LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s — %(message)s"


def _load_yaml(path: str | Path) -> dict[str, Any]:
    """Load a YAML file that must contain a mapping.

    An empty file yields an empty mapping.

    Raises:
        ConfigError: If the file is missing, is not valid YAML, or does not
            parse to a mapping.
    """
    file_path = Path(path)
    if not file_path.exists():
        msg = f"config file not found: {path}"
        raise ConfigError(msg, diagnostics={"path": str(path)})

    try:
        with open(file_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        msg = f"config file is not valid YAML: {path}"
        raise ConfigError(msg, diagnostics={"path": str(path)}) from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"config file must contain a YAML mapping, got {type(data).__name__}"
        raise ConfigError(msg, diagnostics={"path": str(path)})
    return data


def load_config(path: str | Path, *, section: str | None = "beancheck") -> VerifierConfig:
    """Load and validate a ``VerifierConfig`` from a YAML file.

    When the mapping has a top-level *section* key, only that section is
    used, so the settings can live in a shared project YAML file.

    Args:
        path: Path to the YAML file.
        section: Optional top-level key holding the settings.

    Returns:
        The validated configuration.

    Raises:
        ConfigError: If the file cannot be read or fails validation.
    """
    data = _load_yaml(path)
    if section is not None and isinstance(data.get(section), dict):
        data = data[section]
    try:
        return VerifierConfig(**data)
    except ValidationError as exc:
        msg = f"invalid beancheck config in {path}: {exc}"
        raise ConfigError(msg, diagnostics={"path": str(path)}) from exc


def configure_logging(config: VerifierConfig) -> None:
    """Configure the ``beancheck`` logger.

    Sets the level from ``config.log_level`` and installs a console handler.
    Idempotent: repeated calls do not duplicate handlers.

    Args:
        config: Configuration providing ``log_level``.
    """
    bc_logger = logging.getLogger("beancheck")
    bc_logger.setLevel(getattr(logging, config.log_level.upper(), logging.WARNING))

    if not any(isinstance(h, logging.StreamHandler) for h in bc_logger.handlers):
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(_LOG_FORMAT))
        bc_logger.addHandler(console)
