"""
Service wiring.

Builds the backend client, the processed-transaction store and the three
services from one ``BillingSettings``.  The command-line script and any
host application call ``build_services`` once at startup; services never
read settings themselves.
"""

from __future__ import annotations

from dataclasses import dataclass

from billing_kernel.config import BillingSettings
from billing_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from billing_kernel.domain.clock import Clock
from billing_kernel.logging_config import configure_logging, get_logger
from billing_services.backend import PersistenceBackend
from billing_services.client import BackendClient
from billing_services.inventory_adjuster import InventoryAdjuster
from billing_services.item_catalog import ItemCatalog
from billing_services.ledger_service import LedgerEngine
from billing_services.processed_store import (
    InMemoryProcessedTransactionStore,
    ProcessedTransactionStore,
    SqlProcessedTransactionStore,
)

logger = get_logger("services.wiring")


@dataclass(frozen=True)
class BillingServices:
    """Everything a screen or script needs, built from one settings object."""

    backend: PersistenceBackend
    ledger: LedgerEngine
    inventory: InventoryAdjuster
    catalog: ItemCatalog
    processed_store: ProcessedTransactionStore


def build_processed_store(
    settings: BillingSettings, clock: Clock | None = None
) -> ProcessedTransactionStore:
    """SQL-backed store when a database URL is configured, in-memory otherwise."""
    if not settings.dedup_database_url:
        return InMemoryProcessedTransactionStore()
    engine = init_engine_from_url(settings.dedup_database_url)
    create_tables(engine)
    return SqlProcessedTransactionStore(get_session_factory(), clock=clock)


def build_services(
    settings: BillingSettings,
    backend: PersistenceBackend | None = None,
    clock: Clock | None = None,
) -> BillingServices:
    """
    Wire the services.

    Args:
        settings: Loaded settings.
        backend: Overrides the REST client (the offline mode and tests
            pass an InMemoryBackend).
        clock: Time source for the store and catalog.
    """
    configure_logging(level=settings.log_level)

    if backend is None:
        backend = BackendClient(settings.api_base_url, timeout=settings.request_timeout)
    store = build_processed_store(settings, clock=clock)

    logger.info(
        "services_built",
        extra={
            "backend": type(backend).__name__,
            "store": type(store).__name__,
            "strict_fetch": settings.strict_fetch,
        },
    )
    return BillingServices(
        backend=backend,
        ledger=LedgerEngine(backend, strict_fetch=settings.strict_fetch),
        inventory=InventoryAdjuster(backend, processed_store=store),
        catalog=ItemCatalog(backend, clock=clock),
        processed_store=store,
    )
