"""
Module: billing_services
Responsibility:
    Stateful orchestration over the pure engines and the persistence
    backend: party balances, inventory adjustments, catalog maintenance,
    the processed-transaction record and the wiring that builds them.

Architecture position:
    Services -- may import billing_engines and billing_kernel.
"""

from billing_services.backend import PersistenceBackend, StockOperation
from billing_services.client import BackendClient
from billing_services.inventory_adjuster import InventoryAdjuster
from billing_services.item_catalog import ItemCatalog, ItemSummary
from billing_services.ledger_service import LedgerEngine
from billing_services.memory_backend import InMemoryBackend
from billing_services.processed_store import (
    InMemoryProcessedTransactionStore,
    ProcessedTransactionStore,
    SqlProcessedTransactionStore,
)
from billing_services.wiring import BillingServices, build_processed_store, build_services

__all__ = [
    "BackendClient",
    "BillingServices",
    "InMemoryBackend",
    "InMemoryProcessedTransactionStore",
    "InventoryAdjuster",
    "ItemCatalog",
    "ItemSummary",
    "LedgerEngine",
    "PersistenceBackend",
    "ProcessedTransactionStore",
    "SqlProcessedTransactionStore",
    "StockOperation",
    "build_processed_store",
    "build_services",
]
