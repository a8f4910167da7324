"""
Pytest fixtures for the billing core test suite.

Provides:
- Structured logging setup and log capture
- A seeded InMemoryBackend (parties, items, documents)
- Services wired over that backend
- SQLite in-memory sessions for the processed-transaction store
"""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO

import pytest

from billing_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from billing_kernel.domain.clock import DeterministicClock
from billing_kernel.domain.dtos import (
    BARDANA_NAME,
    Bill,
    Invoice,
    Item,
    ItemCategory,
    LineItem,
    Party,
    Payment,
)
from billing_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from billing_services.inventory_adjuster import InventoryAdjuster
from billing_services.item_catalog import ItemCatalog
from billing_services.ledger_service import LedgerEngine
from billing_services.memory_backend import InMemoryBackend


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture billing_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, inventory):
            inventory.apply_on_sale(items, transaction_id="INV-1")
            logs = captured_logs()
            assert any(r["message"] == "stock_adjustment_applied" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("billing_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Clock
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock()


# =============================================================================
# Backend and services
# =============================================================================

RAMESH = ("Ramesh Traders", "9876543210")
SITA = ("Sita Stores", "9123456780")


@pytest.fixture
def backend() -> InMemoryBackend:
    """Backend with Bardana (100 bags), Wheat (50 bags) and Rice (20 bags)."""
    b = InMemoryBackend()
    b.add_item(Item(product_name=BARDANA_NAME, opening_stock=Decimal("100"), is_universal=True))
    b.add_item(
        Item(
            product_name="Wheat",
            opening_stock=Decimal("50"),
            low_stock_alert=Decimal("10"),
            purchase_price=Decimal("25"),
            sale_price=Decimal("30"),
        )
    )
    b.add_item(
        Item(
            product_name="Rice",
            opening_stock=Decimal("20"),
            low_stock_alert=Decimal("20"),
            purchase_price=Decimal("40"),
            sale_price=Decimal("50"),
        )
    )
    b.add_item(
        Item(
            product_name="Sugar",
            category=ItemCategory.KIRANA.value,
            opening_stock=Decimal("2"),
            low_stock_alert=Decimal("5"),
            purchase_price=Decimal("42"),
        )
    )
    return b


@pytest.fixture
def ledger_backend() -> InMemoryBackend:
    """
    Backend with two parties and the mixed scenario for Ramesh:
    invoice 500, payment-in 200, bill 100, payment-out 50 (balance 250).
    Sita has one invoice of 75.
    """
    b = InMemoryBackend()
    b.add_party(Party(name=RAMESH[0], phone_number=RAMESH[1], balance=Decimal("999")))
    b.add_party(Party(name=SITA[0], phone_number=SITA[1]))
    b.add_sale(
        Invoice(
            id="sale-1",
            invoice_no="INV-001",
            party_name=RAMESH[0],
            phone_number=RAMESH[1],
            total_amount=Decimal("500"),
            date=date(2024, 1, 10),
            items=(LineItem("Wheat", Decimal("20"), Decimal("25")),),
        )
    )
    b.add_sale(
        Invoice(
            id="sale-2",
            invoice_no="INV-002",
            party_name=SITA[0],
            phone_number=SITA[1],
            total_amount=Decimal("75"),
            date=date(2024, 1, 12),
        )
    )
    b.add_purchase(
        Bill(
            id="purchase-1",
            bill_no="BILL-001",
            party_name=RAMESH[0],
            phone_number=RAMESH[1],
            total_amount=Decimal("100"),
            date=date(2024, 1, 5),
        )
    )
    b.add_payment(
        Payment(
            id="payment-1",
            payment_no="PAY-001",
            payment_type="payment-in",
            party_name=RAMESH[0].upper(),
            phone_number=RAMESH[1],
            amount=Decimal("200"),
            date=date(2024, 1, 15),
        )
    )
    b.add_payment(
        Payment(
            id="payment-2",
            payment_no="PAY-002",
            payment_type="payment-out",
            party_name=RAMESH[0],
            phone_number=RAMESH[1],
            amount=Decimal("50"),
            date=date(2024, 1, 20),
        )
    )
    return b


@pytest.fixture
def inventory(backend) -> InventoryAdjuster:
    return InventoryAdjuster(backend)


@pytest.fixture
def ledger(ledger_backend) -> LedgerEngine:
    return LedgerEngine(ledger_backend)


@pytest.fixture
def catalog(backend, deterministic_clock) -> ItemCatalog:
    return ItemCatalog(backend, clock=deterministic_clock)


# =============================================================================
# Database (processed-transaction store)
# =============================================================================


@pytest.fixture
def sqlite_session_factory():
    """Fresh in-memory SQLite database with the kernel tables."""
    engine = init_engine_from_url("sqlite://")
    create_tables(engine)
    yield get_session_factory()
    drop_tables(engine)
    reset_engine()
