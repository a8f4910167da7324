"""
Processed-transaction store.

Responsibility:
    Remembers which sale ids have already had their stock adjustment
    applied, so a replayed ``apply_on_sale`` for the same id is a no-op.

Implementations:
    InMemoryProcessedTransactionStore   process-lifetime set (the default)
    SqlProcessedTransactionStore        SQLAlchemy table, survives restarts

Invariants enforced:
    - ``add`` is idempotent: recording an id twice keeps one entry.
    - Entries are scoped (``scope="sale"``) so other flows could share the
      table without colliding.

Failure modes:
    - sqlalchemy errors other than the duplicate-key IntegrityError
      propagate from the SQL store.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from billing_kernel.db.engine import session_scope
from billing_kernel.domain.clock import Clock, SystemClock
from billing_kernel.logging_config import get_logger
from billing_kernel.models.processed_transaction import ProcessedTransaction

logger = get_logger("services.processed_store")

DEFAULT_SCOPE = "sale"


@runtime_checkable
class ProcessedTransactionStore(Protocol):
    """Set of transaction ids already applied to inventory."""

    def has(self, transaction_id: str) -> bool:
        ...

    def add(self, transaction_id: str) -> None:
        ...

    def remove(self, transaction_id: str) -> bool:
        ...

    def clear(self) -> None:
        ...

    def list(self) -> list[str]:
        ...

    def count(self) -> int:
        ...


class InMemoryProcessedTransactionStore:
    """Process-lifetime store; each instance owns its own set."""

    def __init__(self) -> None:
        self._ids: dict[str, None] = {}

    def has(self, transaction_id: str) -> bool:
        return transaction_id in self._ids

    def add(self, transaction_id: str) -> None:
        self._ids[transaction_id] = None

    def remove(self, transaction_id: str) -> bool:
        if transaction_id not in self._ids:
            return False
        del self._ids[transaction_id]
        return True

    def clear(self) -> None:
        self._ids.clear()

    def list(self) -> list[str]:
        return list(self._ids)

    def count(self) -> int:
        return len(self._ids)


class SqlProcessedTransactionStore:
    """
    Store backed by the ``processed_transactions`` table.

    Contract:
        Receives a sessionmaker via constructor injection; every method
        runs in its own ``session_scope`` (commit on success).
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        scope: str = DEFAULT_SCOPE,
        clock: Clock | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._scope = scope
        self._clock = clock or SystemClock()

    def has(self, transaction_id: str) -> bool:
        with session_scope(self._session_factory) as session:
            found = session.execute(
                select(ProcessedTransaction.id).where(
                    ProcessedTransaction.scope == self._scope,
                    ProcessedTransaction.transaction_id == transaction_id,
                )
            ).first()
            return found is not None

    def add(self, transaction_id: str) -> None:
        try:
            with session_scope(self._session_factory) as session:
                session.add(
                    ProcessedTransaction(
                        scope=self._scope,
                        transaction_id=transaction_id,
                        processed_at=self._clock.now_utc(),
                    )
                )
        except IntegrityError:
            logger.info(
                "processed_transaction_already_recorded",
                extra={"transaction_id": transaction_id, "scope": self._scope},
            )

    def remove(self, transaction_id: str) -> bool:
        with session_scope(self._session_factory) as session:
            result = session.execute(
                delete(ProcessedTransaction).where(
                    ProcessedTransaction.scope == self._scope,
                    ProcessedTransaction.transaction_id == transaction_id,
                )
            )
            return result.rowcount > 0

    def clear(self) -> None:
        with session_scope(self._session_factory) as session:
            session.execute(
                delete(ProcessedTransaction).where(ProcessedTransaction.scope == self._scope)
            )

    def list(self) -> list[str]:
        with session_scope(self._session_factory) as session:
            rows = session.execute(
                select(ProcessedTransaction.transaction_id)
                .where(ProcessedTransaction.scope == self._scope)
                .order_by(ProcessedTransaction.processed_at, ProcessedTransaction.transaction_id)
            ).scalars()
            return list(rows)

    def count(self) -> int:
        with session_scope(self._session_factory) as session:
            return session.execute(
                select(func.count())
                .select_from(ProcessedTransaction)
                .where(ProcessedTransaction.scope == self._scope)
            ).scalar_one()
