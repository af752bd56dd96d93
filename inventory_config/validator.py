"""
Configuration Validator (``inventory_config.validator``).

Checks an ``EngineConfig`` before it is handed to the engine:

* every role group is non-empty, and no role is both requester and fulfiller;
* every notification audience has a template containing its placeholder;
* paging limits are positive and the default does not exceed the maximum;
* the alert priority is a known level.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from inventory_config.schema import EngineConfig

REQUIRED_ROOM_PLACEHOLDERS: dict[str, str] = {
    "emv_staff": "{company_id}",
    "parts_coordinator_company": "{company_id}",
    "parts_coordinator_service_center": "{service_center_id}",
    "service_center_staff": "{service_center_id}",
    "service_center_manager": "{service_center_id}",
}

ALERT_PRIORITIES = ("low", "medium", "high")


@dataclass
class ConfigValidationResult:
    """
    Result of configuration validation.

    ``is_valid`` is True only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_configuration(config: EngineConfig) -> ConfigValidationResult:
    result = ConfigValidationResult()

    _validate_roles(config, result)
    _validate_rooms(config, result)
    _validate_pagination(config, result)
    _validate_alerts(config, result)

    return result


def _validate_roles(config: EngineConfig, result: ConfigValidationResult) -> None:
    roles = config.roles
    groups = {
        "service_center": roles.service_center_roles,
        "company": roles.company_roles,
        "admin": roles.admin_roles,
        "transfer_requester": roles.requester_roles,
        "transfer_fulfiller": roles.fulfiller_roles,
    }
    for name, members in groups.items():
        if not members:
            result.add_error(f"Role group '{name}' is empty")

    both = set(roles.requester_roles) & set(roles.fulfiller_roles)
    if both:
        result.add_error(
            f"Roles cannot be both requester and fulfiller: {', '.join(sorted(both))}"
        )

    scoped = set(roles.service_center_roles) | set(roles.company_roles) | set(roles.admin_roles)
    for role in sorted((set(roles.requester_roles) | set(roles.fulfiller_roles)) - scoped):
        result.add_warning(f"Transfer role '{role}' has no warehouse scope")


def _validate_rooms(config: EngineConfig, result: ConfigValidationResult) -> None:
    templates = config.rooms.templates
    for key, placeholder in REQUIRED_ROOM_PLACEHOLDERS.items():
        template = templates.get(key)
        if template is None:
            result.add_error(f"Room template '{key}' is missing")
        elif placeholder not in template:
            result.add_error(f"Room template '{key}' must contain {placeholder}")
    for key in sorted(set(templates) - set(REQUIRED_ROOM_PLACEHOLDERS)):
        result.add_warning(f"Room template '{key}' is not used by the engine")


def _validate_pagination(config: EngineConfig, result: ConfigValidationResult) -> None:
    paging = config.pagination
    if paging.default_limit < 1:
        result.add_error("pagination.default_limit must be positive")
    if paging.max_limit < 1:
        result.add_error("pagination.max_limit must be positive")
    if paging.default_limit > paging.max_limit:
        result.add_error("pagination.default_limit cannot exceed max_limit")


def _validate_alerts(config: EngineConfig, result: ConfigValidationResult) -> None:
    if config.alerts.priority not in ALERT_PRIORITIES:
        result.add_error(
            f"alerts.low_stock.priority must be one of {', '.join(ALERT_PRIORITIES)}"
        )
