"""
Access scoping -- which warehouses a caller may see.

Responsibility:
    Turn the caller's identity context into a warehouse filter.  Each
    ``ScopeResolver`` variant yields a SQLAlchemy predicate over
    ``Warehouse`` for list queries and an ``allows`` check for rows that
    were already loaded by id.

    ``RoleDirectory`` maps role names to a scope variant and to the party
    a role plays in a transfer (requester or fulfiller).  Role names are
    data: the default set below matches the shipped configuration and
    ``inventory_config.bridges`` builds the directory from YAML.

Failure modes:
    - ForbiddenError when a role is unknown, or lacks the service center /
      company id its scope needs.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from sqlalchemy import ColumnElement, and_, true

from inventory_kernel.exceptions import ForbiddenError
from inventory_kernel.models.warehouse import Warehouse


@dataclass(frozen=True)
class ActorContext:
    """Caller identity as supplied by the API layer."""

    user_id: UUID
    role_name: str
    service_center_id: UUID | None = None
    company_id: UUID | None = None


class TransferParty(str, Enum):
    REQUESTER = "REQUESTER"
    FULFILLER = "FULFILLER"


class ScopeResolver(ABC):
    """Warehouse filter for one caller."""

    @abstractmethod
    def predicate(self) -> ColumnElement[bool]:
        ...

    @abstractmethod
    def allows(self, warehouse: Warehouse) -> bool:
        ...


@dataclass(frozen=True)
class ServiceCenterScope(ScopeResolver):
    service_center_id: UUID

    def predicate(self) -> ColumnElement[bool]:
        return Warehouse.service_center_id == self.service_center_id

    def allows(self, warehouse: Warehouse) -> bool:
        return warehouse.service_center_id == self.service_center_id


@dataclass(frozen=True)
class CompanyScope(ScopeResolver):
    """All warehouses of a company, optionally narrowed to one service center."""

    company_id: UUID
    service_center_id: UUID | None = None

    def predicate(self) -> ColumnElement[bool]:
        clause = Warehouse.vehicle_company_id == self.company_id
        if self.service_center_id is not None:
            clause = and_(clause, Warehouse.service_center_id == self.service_center_id)
        return clause

    def allows(self, warehouse: Warehouse) -> bool:
        if warehouse.vehicle_company_id != self.company_id:
            return False
        return (
            self.service_center_id is None
            or warehouse.service_center_id == self.service_center_id
        )


@dataclass(frozen=True)
class UnscopedAdmin(ScopeResolver):
    def predicate(self) -> ColumnElement[bool]:
        return true()

    def allows(self, warehouse: Warehouse) -> bool:
        return True


DEFAULT_SERVICE_CENTER_ROLES = frozenset({
    "parts_coordinator_service_center",
    "service_center_manager",
    "service_center_staff",
    "service_center_technician",
})
DEFAULT_COMPANY_ROLES = frozenset({"parts_coordinator_company", "emv_staff"})
DEFAULT_ADMIN_ROLES = frozenset({"emv_admin"})
DEFAULT_REQUESTER_ROLES = frozenset({
    "service_center_manager",
    "parts_coordinator_service_center",
})
DEFAULT_FULFILLER_ROLES = frozenset({"emv_staff", "parts_coordinator_company"})


@dataclass(frozen=True)
class RoleDirectory:
    """Role name -> scope variant and transfer party."""

    service_center_roles: frozenset[str] = DEFAULT_SERVICE_CENTER_ROLES
    company_roles: frozenset[str] = DEFAULT_COMPANY_ROLES
    admin_roles: frozenset[str] = DEFAULT_ADMIN_ROLES
    requester_roles: frozenset[str] = DEFAULT_REQUESTER_ROLES
    fulfiller_roles: frozenset[str] = DEFAULT_FULFILLER_ROLES

    def resolve_scope(
        self,
        actor: ActorContext,
        service_center_id: UUID | None = None,
    ) -> ScopeResolver:
        """
        Pick the scope variant for ``actor``.

        ``service_center_id`` narrows a company-level caller to one of its
        service centers; other callers ignore it.
        """
        role = actor.role_name
        if role in self.admin_roles:
            return UnscopedAdmin()
        if role in self.service_center_roles:
            if actor.service_center_id is None:
                raise ForbiddenError(role, "read inventory", "no service center on actor")
            return ServiceCenterScope(actor.service_center_id)
        if role in self.company_roles:
            if actor.company_id is None:
                raise ForbiddenError(role, "read inventory", "no company on actor")
            return CompanyScope(actor.company_id, service_center_id)
        raise ForbiddenError(role, "read inventory", "role has no warehouse scope")

    def resolve_party(self, actor: ActorContext) -> TransferParty:
        if actor.role_name in self.fulfiller_roles:
            return TransferParty.FULFILLER
        if actor.role_name in self.requester_roles:
            return TransferParty.REQUESTER
        raise ForbiddenError(
            actor.role_name, "act on transfer requests", "role is not a transfer party"
        )
