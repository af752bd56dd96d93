"""
Module: inventory_kernel.selectors.base
Responsibility: Base class and paging rules for read-only query selectors.
Architecture position: Kernel > Selectors.  May import from models/, the
    domain DTOs and scope resolvers.  MUST NOT import from services/.

Invariants enforced:
    - Read-only access: selectors take a Session from the caller and never
      call add(), delete(), flush() or commit().  They take no row locks.
    - DTO return convention: selectors return frozen dataclasses, never ORM
      instances.

Failure modes:
    - BadRequestError for a page below 1 or a non-positive limit.
"""

from abc import ABC
from dataclasses import dataclass

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from inventory_kernel.exceptions import BadRequestError


@dataclass(frozen=True)
class PageDefaults:
    """Paging limits; ``inventory_config`` builds these from YAML."""

    default_limit: int = 10
    max_limit: int = 100

    def normalize(self, page: int | None, limit: int | None) -> tuple[int, int]:
        """Return (page, limit), defaulted and capped at ``max_limit``."""
        page = 1 if page is None else page
        limit = self.default_limit if limit is None else limit
        if page < 1:
            raise BadRequestError("page", "must be 1 or greater")
        if limit < 1:
            raise BadRequestError("limit", "must be positive")
        return page, min(limit, self.max_limit)


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only
        queries, and return DTOs.  They MUST NOT mutate any data.
    """

    def __init__(self, session: Session, paging: PageDefaults | None = None):
        self.session = session
        self.paging = paging or PageDefaults()

    def _count(self, stmt: Select) -> int:
        return self.session.scalar(select(func.count()).select_from(stmt.order_by(None).subquery()))
