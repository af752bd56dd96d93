"""
ComponentRegistry -- serialized unit records and their physical status.

Responsibility:
    Create components (IN adjustments), find and lock concrete units for a
    physical move, and advance a unit's status along COMPONENT_TRANSITIONS.

Invariants enforced:
    - Serial numbers are unique system-wide (checked before insert and
      backed by the unique constraint).
    - FIFO: ``lock_available`` returns the earliest-created units first,
      ties broken by serial number.
    - A status move not present in COMPONENT_TRANSITIONS raises
      ComponentStateError.
"""

from typing import Iterable, Sequence
from uuid import UUID

from sqlalchemy import select

from inventory_kernel.db.unit_of_work import UnitOfWork
from inventory_kernel.domain.statuses import (
    COMPONENT_TRANSITIONS,
    ComponentStatus,
    can_transition,
)
from inventory_kernel.exceptions import ComponentNotFoundError, ComponentStateError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.component import Component
from inventory_kernel.services.base import BaseService, lock_rows

logger = get_logger("services.component_registry")


class ComponentRegistry(BaseService):
    """
    Serialized units: creation, locking and guarded status changes.

    Guarantees:
        - ``existing_serials`` reports every already-known serial at once;
          the unique index on ``serial_number`` backs it up.
        - ``transition`` refuses moves the component lifecycle table does
          not allow.
        - Shelf picks are FIFO by ``created_at``, then serial number.
    """

    def existing_serials(self, uow: UnitOfWork, serial_numbers: Iterable[str]) -> list[str]:
        serials = sorted(set(serial_numbers))
        if not serials:
            return []
        stmt = (
            select(Component.serial_number)
            .where(Component.serial_number.in_(serials))
            .order_by(Component.serial_number)
        )
        return list(uow.session.scalars(stmt))

    def create_components(
        self,
        uow: UnitOfWork,
        serial_numbers: Sequence[str],
        warehouse_id: UUID,
        type_component_id: UUID,
        actor_id: UUID | None = None,
    ) -> list[Component]:
        """Insert IN_STOCK components; the caller checked for duplicates."""
        now = self._clock.now()
        components = [
            Component(
                serial_number=serial,
                type_component_id=type_component_id,
                warehouse_id=warehouse_id,
                status=ComponentStatus.IN_STOCK.value,
                created_by_id=actor_id,
                created_at=now,
            )
            for serial in serial_numbers
        ]
        uow.session.add_all(components)
        uow.session.flush()
        logger.info(
            "components_created",
            extra={
                "warehouse_id": str(warehouse_id),
                "type_component_id": str(type_component_id),
                "count": len(components),
            },
        )
        return components

    def lock_available(
        self,
        uow: UnitOfWork,
        warehouse_id: UUID,
        type_component_id: UUID,
        limit: int,
        status: ComponentStatus = ComponentStatus.IN_STOCK,
    ) -> list[Component]:
        """Lock up to ``limit`` units in ``status``, earliest created first."""
        stmt = (
            select(Component)
            .where(
                Component.warehouse_id == warehouse_id,
                Component.type_component_id == type_component_id,
                Component.status == status.value,
            )
            .order_by(Component.created_at, Component.serial_number)
            .limit(limit)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return list(uow.session.scalars(stmt))

    def lock_by_serials(self, uow: UnitOfWork, serial_numbers: Sequence[str]) -> list[Component]:
        """Lock components by serial; raises if any serial is unknown."""
        serials = sorted(set(serial_numbers))
        stmt = (
            select(Component)
            .where(Component.serial_number.in_(serials))
            .order_by(Component.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        components = list(uow.session.scalars(stmt))
        found = {component.serial_number for component in components}
        missing = [serial for serial in serials if serial not in found]
        if missing:
            raise ComponentNotFoundError(missing)
        return components

    def lock_by_ids(self, uow: UnitOfWork, component_ids: Iterable[UUID]) -> dict[UUID, Component]:
        wanted = set(component_ids)
        components = {c.id: c for c in lock_rows(uow, Component, wanted)}
        missing = wanted - components.keys()
        if missing:
            raise ComponentNotFoundError(sorted(str(m) for m in missing))
        return components

    def lock_in_transit(self, uow: UnitOfWork, request_id: UUID) -> list[Component]:
        stmt = (
            select(Component)
            .where(
                Component.request_id == request_id,
                Component.status == ComponentStatus.IN_TRANSIT.value,
            )
            .order_by(Component.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return list(uow.session.scalars(stmt))

    def find_on_vehicle(
        self,
        uow: UnitOfWork,
        vehicle_vin: str,
        type_component_id: UUID,
        exclude_id: UUID | None = None,
    ) -> Component | None:
        """The unit of this type fitted to a vehicle (unlocked read; lock it by id)."""
        criteria = [
            Component.vehicle_vin == vehicle_vin,
            Component.type_component_id == type_component_id,
            Component.status != ComponentStatus.REMOVED.value,
        ]
        if exclude_id is not None:
            criteria.append(Component.id != exclude_id)
        stmt = (
            select(Component)
            .where(*criteria)
            .order_by(Component.id)
            .limit(1)
        )
        return uow.session.scalars(stmt).first()

    def transition(
        self,
        component: Component,
        target: ComponentStatus,
        **fields,
    ) -> Component:
        """Move a component to ``target`` and set extra attributes."""
        current = ComponentStatus(component.status)
        if not can_transition(COMPONENT_TRANSITIONS, current, target):
            raise ComponentStateError(
                serial_number=component.serial_number,
                status=component.status,
                reason=f"cannot move to {target.value}",
            )
        component.status = target.value
        for name, value in fields.items():
            setattr(component, name, value)
        logger.debug(
            "component_transitioned",
            extra={
                "serial_number": component.serial_number,
                "from_status": current.value,
                "to_status": target.value,
            },
        )
        return component
