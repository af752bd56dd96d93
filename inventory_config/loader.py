"""
Configuration Loader (``inventory_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the frozen
``inventory_config.schema`` dataclasses.  Runtime callers go through
``inventory_config.get_active_config()`` instead of calling this directly.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from inventory_config.schema import (
    AlertConfig,
    DatabaseConfig,
    EngineConfig,
    PaginationConfig,
    RoleConfig,
    RoomConfig,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    return DatabaseConfig(
        url=data.get("url", DatabaseConfig.url),
        echo=bool(data.get("echo", False)),
        pool_size=int(data.get("pool_size", DatabaseConfig.pool_size)),
        max_overflow=int(data.get("max_overflow", DatabaseConfig.max_overflow)),
        pool_timeout=int(data.get("pool_timeout", DatabaseConfig.pool_timeout)),
    )


def parse_pagination(data: dict[str, Any]) -> PaginationConfig:
    return PaginationConfig(
        default_limit=int(data.get("default_limit", PaginationConfig.default_limit)),
        max_limit=int(data.get("max_limit", PaginationConfig.max_limit)),
    )


def parse_roles(data: dict[str, Any]) -> RoleConfig:
    """Parse role groups; every group is required."""
    return RoleConfig(
        service_center_roles=tuple(data["service_center"]),
        company_roles=tuple(data["company"]),
        admin_roles=tuple(data["admin"]),
        requester_roles=tuple(data["transfer_requester"]),
        fulfiller_roles=tuple(data["transfer_fulfiller"]),
    )


def parse_rooms(data: dict[str, Any]) -> RoomConfig:
    return RoomConfig(templates={str(k): str(v) for k, v in data.items()})


def parse_alerts(data: dict[str, Any]) -> AlertConfig:
    low_stock = data.get("low_stock", {})
    return AlertConfig(
        low_stock_enabled=bool(low_stock.get("enabled", True)),
        priority=str(low_stock.get("priority", AlertConfig.priority)),
    )


def parse_config(data: dict[str, Any]) -> EngineConfig:
    """
    Parse a whole configuration document.

    Raises:
        KeyError: If ``config_id``, ``version``, ``roles`` or ``rooms`` is
            missing.
    """
    return EngineConfig(
        config_id=data["config_id"],
        version=int(data["version"]),
        database=parse_database(data.get("database", {})),
        pagination=parse_pagination(data.get("pagination", {})),
        roles=parse_roles(data["roles"]),
        rooms=parse_rooms(data["rooms"]),
        alerts=parse_alerts(data.get("alerts", {})),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON form; identical input, identical hash."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
