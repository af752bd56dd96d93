"""
Module: inventory_kernel.db.unit_of_work
Responsibility: The explicit transaction handle threaded through every
    engine method, plus the post-commit effect queue.
Architecture position: Kernel > DB.  Imports only logging_config.

Every state-changing engine operation receives a ``UnitOfWork`` as its
first argument and works through ``uow.session``.  Services flush, they
never commit; the owner of the unit of work decides the boundary.

Side effects that must not be part of the transaction (notifications,
low-stock alerts) are queued with ``after_commit`` and run only once the
commit succeeded.  A failing effect is logged as ``side_effect_failed``
and swallowed: the stock mutation it follows is already durable.

Usage:
    with unit_of_work(get_session_factory()) as uow:
        workflow.approve(uow, request_id, actor)
    # committed here, then queued notifications run
"""

from contextlib import contextmanager
from typing import Any, Callable, Generator

from sqlalchemy.orm import Session, sessionmaker

from inventory_kernel.logging_config import get_logger

logger = get_logger("db.unit_of_work")


class UnitOfWork:
    """One transactional call: a session plus its post-commit queue."""

    def __init__(
        self,
        session: Session,
        on_effect_failure: Callable[[str, Exception], None] | None = None,
    ):
        self.session = session
        self._on_effect_failure = on_effect_failure
        self._effects: list[tuple[str, Callable[..., Any], tuple, dict]] = []
        self.committed = False

    def after_commit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        """Queue ``fn(*args, **kwargs)`` to run after a successful commit."""
        name = getattr(fn, "__qualname__", repr(fn))
        self._effects.append((name, fn, args, kwargs))

    @property
    def pending_effects(self) -> int:
        return len(self._effects)

    def flush(self) -> None:
        self.session.flush()

    def commit(self) -> None:
        """Commit the transaction, then run queued effects best-effort."""
        self.session.commit()
        self.committed = True
        logger.debug("unit_of_work_committed", extra={"effects": len(self._effects)})
        effects, self._effects = self._effects, []
        for name, fn, args, kwargs in effects:
            try:
                fn(*args, **kwargs)
            except Exception as exc:
                logger.exception("side_effect_failed", extra={"effect": name})
                if self._on_effect_failure is not None:
                    self._on_effect_failure(name, exc)
            # Effects may read; they must not leave a transaction open.
            if self.session.in_transaction():
                self.session.rollback()

    def rollback(self) -> None:
        """Roll back and discard every queued effect."""
        self._effects.clear()
        self.session.rollback()
        logger.debug("unit_of_work_rolled_back")


@contextmanager
def unit_of_work(
    session_factory: sessionmaker[Session],
    on_effect_failure: Callable[[str, Exception], None] | None = None,
) -> Generator[UnitOfWork, None, None]:
    """
    Open a session, yield a UnitOfWork, commit on success.

    On exception the transaction is rolled back, queued effects are
    dropped, and the exception is re-raised.  The session is always closed.
    """
    session = session_factory()
    uow = UnitOfWork(session, on_effect_failure)
    try:
        yield uow
        uow.commit()
    except Exception:
        uow.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()
