"""
In-memory persistence backend.

Responsibility:
    A dict-backed ``PersistenceBackend`` that follows the REST backend's
    rules: exact-id lookups, case-insensitive substring search, a single
    universal Bardana item that cannot be deleted, and Bardana stock
    changes taken in kilograms and stored in bags.  Used by the test
    suite and by the command-line tool's ``--offline`` mode.

Non-goals:
    No persistence across processes; no locking (the billing core is
    single-threaded).
"""

from __future__ import annotations

import itertools
from dataclasses import replace
from decimal import Decimal
from typing import Any, Mapping

from billing_engines.stock import stock_after_issue, stock_after_receipt
from billing_kernel.domain.dtos import (
    BARDANA_NAME,
    Bill,
    Invoice,
    Item,
    ItemCategory,
    Party,
    Payment,
    parse_date,
)
from billing_kernel.domain.units import to_decimal
from billing_kernel.exceptions import FetchError, UpdateError
from billing_services.backend import StockOperation

# Backend field name -> Item attribute
_ITEM_FIELDS = {
    "productName": "product_name",
    "category": "category",
    "purchasePrice": "purchase_price",
    "salePrice": "sale_price",
    "openingStock": "opening_stock",
    "lowStockAlert": "low_stock_alert",
    "asOfDate": "as_of_date",
    "isUniversal": "is_universal",
}


class InMemoryBackend:
    """Dict-backed implementation of the persistence backend."""

    def __init__(self) -> None:
        self.items: dict[str, Item] = {}
        self.parties: dict[str, Party] = {}
        self.sales: list[Invoice] = []
        self.purchases: list[Bill] = []
        self.payments: list[Payment] = []
        self.calls: list[str] = []
        self._ids = itertools.count(1)

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def add_party(self, party: Party) -> Party:
        stored = party if party.id else replace(party, id=self._next_id("party"))
        self.parties[stored.id] = stored
        return stored

    def add_item(self, item: Item) -> Item:
        stored = item if item.id else replace(item, id=self._next_id("item"))
        self.items[stored.id] = stored
        return stored

    def add_sale(self, invoice: Invoice) -> Invoice:
        self.sales.append(invoice)
        return invoice

    def add_purchase(self, bill: Bill) -> Bill:
        self.purchases.append(bill)
        return bill

    def add_payment(self, payment: Payment) -> Payment:
        self.payments.append(payment)
        return payment

    def find_item(self, product_name: str) -> Item | None:
        for item in self.items.values():
            if item.product_name == product_name:
                return item
        return None

    # ------------------------------------------------------------------
    # Sales, purchases, payments
    # ------------------------------------------------------------------

    def list_sales(self) -> list[Invoice]:
        self.calls.append("list_sales")
        return list(self.sales)

    def list_purchases(self) -> list[Bill]:
        self.calls.append("list_purchases")
        return list(self.purchases)

    def list_payments(self, payment_type: str | None = None) -> list[Payment]:
        self.calls.append("list_payments")
        if payment_type and payment_type != "all":
            return [p for p in self.payments if p.payment_type == payment_type]
        return list(self.payments)

    # ------------------------------------------------------------------
    # Parties
    # ------------------------------------------------------------------

    def list_parties(self, search: str | None = None) -> list[Party]:
        self.calls.append("list_parties")
        parties = list(self.parties.values())
        if search:
            needle = search.lower()
            parties = [
                p for p in parties
                if needle in p.name.lower() or needle in p.phone_number
            ]
        return parties

    def get_party(self, party_id: str) -> Party:
        self.calls.append("get_party")
        try:
            return self.parties[party_id]
        except KeyError:
            raise FetchError("party", f"party {party_id} not found", status=404) from None

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def list_items(
        self,
        search: str | None = None,
        category: str | None = None,
        is_universal: bool | None = None,
    ) -> list[Item]:
        self.calls.append("list_items")
        items = list(self.items.values())
        if search:
            needle = search.lower()
            items = [i for i in items if needle in i.product_name.lower()]
        if category and category != "all":
            items = [i for i in items if i.category == category]
        if is_universal is not None:
            items = [i for i in items if i.is_universal == is_universal]
        return items

    def get_item(self, item_id: str) -> Item:
        self.calls.append("get_item")
        try:
            return self.items[item_id]
        except KeyError:
            raise FetchError("item", f"item {item_id} not found", status=404) from None

    def create_item(self, item: Item) -> Item:
        self.calls.append("create_item")
        wanted = item.product_name.lower()
        if any(i.product_name.lower() == wanted for i in self.items.values()):
            raise UpdateError("item", "Product with this name already exists", status=400)
        return self.add_item(replace(item, id=None))

    def update_item(self, item_id: str, patch: Mapping[str, Any]) -> Item:
        self.calls.append("update_item")
        current = self.items.get(item_id)
        if current is None:
            raise UpdateError("item", f"item {item_id} not found", status=404)
        changes: dict[str, Any] = {}
        for key, value in patch.items():
            attr = _ITEM_FIELDS.get(key)
            if attr is None:
                raise UpdateError("item", f"unknown field {key}", status=400)
            if attr == "as_of_date":
                value = parse_date(value)
            changes[attr] = value
        updated = replace(current, **changes)
        self.items[item_id] = updated
        return updated

    def delete_item(self, item_id: str) -> None:
        self.calls.append("delete_item")
        current = self.items.get(item_id)
        if current is None:
            raise UpdateError("item", f"item {item_id} not found", status=404)
        if current.is_universal:
            raise UpdateError("item", "Universal items cannot be deleted", status=400)
        del self.items[item_id]

    # ------------------------------------------------------------------
    # Bardana
    # ------------------------------------------------------------------

    def get_bardana(self) -> Item:
        self.calls.append("get_bardana")
        bardana = self.find_item(BARDANA_NAME)
        if bardana is None:
            raise FetchError("bardana", "Bardana item not found", status=404)
        return bardana

    def update_bardana_stock(self, operation: StockOperation, quantity_kg: Decimal) -> Item:
        self.calls.append("update_bardana_stock")
        bardana = self.find_item(BARDANA_NAME)
        if bardana is None:
            raise UpdateError("bardana", "Bardana item not found", status=404)
        quantity_kg = to_decimal(quantity_kg)
        if StockOperation(operation) == StockOperation.SUBTRACT:
            new_stock = stock_after_issue(bardana.opening_stock, quantity_kg)
        else:
            new_stock = stock_after_receipt(bardana.opening_stock, quantity_kg)
        updated = replace(bardana, opening_stock=new_stock)
        self.items[bardana.id] = updated
        return updated

    def initialize_bardana(self) -> Item:
        self.calls.append("initialize_bardana")
        existing = self.find_item(BARDANA_NAME)
        if existing is not None:
            return existing
        return self.add_item(
            Item(
                product_name=BARDANA_NAME,
                category=ItemCategory.PRIMARY.value,
                is_universal=True,
            )
        )
