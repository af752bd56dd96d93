"""
Configuration schema for the inventory engine.

Frozen dataclasses parsed from YAML by ``inventory_config.loader``.  The
single runtime artifact is ``EngineConfig``, returned by
``inventory_config.get_active_config()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping


@dataclass(frozen=True)
class DatabaseConfig:
    url: str = "sqlite:///:memory:"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30


@dataclass(frozen=True)
class PaginationConfig:
    default_limit: int = 10
    max_limit: int = 100


@dataclass(frozen=True)
class RoleConfig:
    """
    Role names grouped by the warehouse scope they read with and by the
    party they play on a transfer request.
    """

    service_center_roles: tuple[str, ...] = ()
    company_roles: tuple[str, ...] = ()
    admin_roles: tuple[str, ...] = ()
    requester_roles: tuple[str, ...] = ()
    fulfiller_roles: tuple[str, ...] = ()


@dataclass(frozen=True)
class RoomConfig:
    """Notification room name templates keyed by audience."""

    templates: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class AlertConfig:
    low_stock_enabled: bool = True
    priority: str = "high"


@dataclass(frozen=True)
class EngineConfig:
    """The complete, validated configuration for one deployment."""

    config_id: str
    version: int
    database: DatabaseConfig
    pagination: PaginationConfig
    roles: RoleConfig
    rooms: RoomConfig
    alerts: AlertConfig
    checksum: str = ""
