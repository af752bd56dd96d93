"""Database layer: declarative base, engine management, unit of work."""

from inventory_kernel.db.base import Base, TrackedBase, UUIDString
from inventory_kernel.db.unit_of_work import UnitOfWork, unit_of_work

__all__ = [
    "Base",
    "TrackedBase",
    "UUIDString",
    "UnitOfWork",
    "unit_of_work",
]
