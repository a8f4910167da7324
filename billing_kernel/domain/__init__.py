"""
Pure domain layer.

This module contains immutable data transfer objects, unit conversion
and the clock abstraction, with NO dependencies on:
- ORM (SQLAlchemy)
- HTTP
- I/O
"""

from billing_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from billing_kernel.domain.dtos import (
    BARDANA_NAME,
    Bill,
    Invoice,
    Item,
    ItemCategory,
    LineItem,
    Party,
    Payment,
    Transaction,
    TransactionKind,
    same_party,
)
from billing_kernel.domain.units import (
    KG_PER_BAG,
    bags_to_kg,
    kg_to_bags,
    round_bags,
    to_decimal,
)

__all__ = [
    "BARDANA_NAME",
    "Bill",
    "Clock",
    "DeterministicClock",
    "Invoice",
    "Item",
    "ItemCategory",
    "KG_PER_BAG",
    "LineItem",
    "Party",
    "Payment",
    "SystemClock",
    "Transaction",
    "TransactionKind",
    "bags_to_kg",
    "kg_to_bags",
    "round_bags",
    "same_party",
    "to_decimal",
]
