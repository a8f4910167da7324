"""
Persistence backend protocol.

Contract:
    The ledger and inventory services talk to the remote store only through
    ``PersistenceBackend``.  Reads raise ``FetchError`` and writes raise
    ``UpdateError`` on any transport, HTTP or envelope failure.

    ``update_item`` takes a patch keyed by backend field names
    (``openingStock``, ``lowStockAlert``, ...).  ``update_bardana_stock``
    takes kilograms; the backend converts to bags.  ``initialize_bardana``
    is idempotent and returns the existing item when Bardana is already
    present.

Implementations:
    billing_services.client.BackendClient          REST over HTTP (requests)
    billing_services.memory_backend.InMemoryBackend  dict-backed, offline/tests
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Protocol, runtime_checkable

from billing_kernel.domain.dtos import Bill, Invoice, Item, Party, Payment


class StockOperation(str, Enum):
    """Direction of a Bardana stock change."""

    ADD = "add"
    SUBTRACT = "subtract"


@runtime_checkable
class PersistenceBackend(Protocol):
    """Operations the billing core consumes from the remote store."""

    def list_sales(self) -> list[Invoice]:
        ...

    def list_purchases(self) -> list[Bill]:
        ...

    def list_payments(self, payment_type: str | None = None) -> list[Payment]:
        ...

    def list_parties(self, search: str | None = None) -> list[Party]:
        ...

    def get_party(self, party_id: str) -> Party:
        ...

    def list_items(
        self,
        search: str | None = None,
        category: str | None = None,
        is_universal: bool | None = None,
    ) -> list[Item]:
        ...

    def get_item(self, item_id: str) -> Item:
        ...

    def create_item(self, item: Item) -> Item:
        ...

    def update_item(self, item_id: str, patch: Mapping[str, Any]) -> Item:
        ...

    def delete_item(self, item_id: str) -> None:
        ...

    def get_bardana(self) -> Item:
        ...

    def update_bardana_stock(self, operation: StockOperation, quantity_kg: Decimal) -> Item:
        ...

    def initialize_bardana(self) -> Item:
        ...
