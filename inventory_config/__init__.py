"""
inventory_config -- single public entrypoint for engine configuration.

Responsibility:
    ``get_active_config()`` is the only way to obtain configuration at
    runtime.  It loads a YAML document (the shipped ``sets/default.yaml``
    unless a path is given), parses it into frozen dataclasses and
    validates it.

Architecture position:
    Sits above ``inventory_kernel`` and below ``inventory_services``.  The
    kernel never imports this package; ``bridges`` translates the config
    into kernel inputs.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``KeyError`` -- a required section is missing.
    - ``ValueError`` -- validation failed; the message lists every error.
"""

from __future__ import annotations

import logging
from pathlib import Path

from inventory_config.loader import load_yaml_file, parse_config
from inventory_config.schema import EngineConfig
from inventory_config.validator import validate_configuration

_logger = logging.getLogger("inventory_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | str | None = None) -> EngineConfig:
    """
    Load, parse and validate the engine configuration.

    Args:
        config_path: YAML file to load.  Defaults to ``sets/default.yaml``.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If validation reports any error.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    config = parse_config(load_yaml_file(path))

    validation = validate_configuration(config)
    for warning in validation.warnings:
        _logger.warning("config_warning", extra={"warning": warning})
    if not validation.is_valid:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in validation.errors)
        )

    _logger.info(
        "INVENTORY_CONFIG_TRACE",
        extra={
            "trace_type": "INVENTORY_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "role_count": sum(
                len(group)
                for group in (
                    config.roles.service_center_roles,
                    config.roles.company_roles,
                    config.roles.admin_roles,
                )
            ),
        },
    )
    return config


__all__ = ["DEFAULT_CONFIG_PATH", "EngineConfig", "get_active_config"]
