"""
Module: billing_kernel.models.processed_transaction
Responsibility: ORM persistence for the set of transaction ids whose stock
    adjustment has already been applied.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - transaction_id is unique per scope (uq_processed_transaction), so a
      second insert for the same sale is rejected by the database.

Failure modes:
    - IntegrityError on a duplicate (scope, transaction_id); the store
      treats that as "already recorded".
"""

from datetime import datetime

from sqlalchemy import DateTime, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from billing_kernel.db.base import Base


class ProcessedTransaction(Base):
    """A transaction id recorded as applied to inventory."""

    __tablename__ = "processed_transactions"

    __table_args__ = (
        UniqueConstraint("scope", "transaction_id", name="uq_processed_transaction"),
    )

    scope: Mapped[str] = mapped_column(String(50), nullable=False)
    transaction_id: Mapped[str] = mapped_column(String(255), nullable=False)
    processed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<ProcessedTransaction {self.scope}:{self.transaction_id}>"
