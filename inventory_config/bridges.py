"""
Config -> Kernel Bridges.

Functions that convert an ``EngineConfig`` into kernel inputs.  They live
here because the kernel must never import ``inventory_config``.

Usage:
    from inventory_config.bridges import build_role_directory, build_room_directory

    config = get_active_config()
    rooms = build_room_directory(config)
    roles = build_role_directory(config)
"""

from __future__ import annotations

from inventory_config.schema import EngineConfig
from inventory_kernel.domain.notifications import RoomDirectory
from inventory_kernel.domain.scope import RoleDirectory
from inventory_kernel.selectors.base import PageDefaults


def build_room_directory(config: EngineConfig) -> RoomDirectory:
    return RoomDirectory(templates=dict(config.rooms.templates))


def build_role_directory(config: EngineConfig) -> RoleDirectory:
    roles = config.roles
    return RoleDirectory(
        service_center_roles=frozenset(roles.service_center_roles),
        company_roles=frozenset(roles.company_roles),
        admin_roles=frozenset(roles.admin_roles),
        requester_roles=frozenset(roles.requester_roles),
        fulfiller_roles=frozenset(roles.fulfiller_roles),
    )


def build_page_defaults(config: EngineConfig) -> PageDefaults:
    return PageDefaults(
        default_limit=config.pagination.default_limit,
        max_limit=config.pagination.max_limit,
    )
