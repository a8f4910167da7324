"""ORM models for the billing kernel."""

from billing_kernel.models.processed_transaction import ProcessedTransaction

__all__ = ["ProcessedTransaction"]
