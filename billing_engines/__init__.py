"""
Module: billing_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the canonical import surface for
    billing_services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import billing_kernel.  MUST NOT import billing_services.

Invariants enforced:
    - Decimal-only arithmetic for money, kilograms and bags.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from billing_engines import compute_balance, consolidate_line_items
"""

from billing_engines.ledger import (
    SIGN_RULE,
    BalanceBreakdown,
    PartyBalance,
    compute_balance,
    filter_party,
    sort_newest_first,
)
from billing_engines.stock import (
    SKIP_DUPLICATE,
    SKIP_NO_ITEMS,
    SKIP_NOT_FOUND,
    AdjustmentDirection,
    AdjustmentResult,
    AdjustmentStatus,
    ItemAdjustmentOutcome,
    OutcomeStatus,
    coerce_line_items,
    consolidate_line_items,
    stock_after_issue,
    stock_after_receipt,
    total_weight_kg,
    validate_line_items,
)
from billing_engines.tracer import traced_engine

__all__ = [
    "AdjustmentDirection",
    "AdjustmentResult",
    "AdjustmentStatus",
    "BalanceBreakdown",
    "ItemAdjustmentOutcome",
    "OutcomeStatus",
    "PartyBalance",
    "SIGN_RULE",
    "SKIP_DUPLICATE",
    "SKIP_NOT_FOUND",
    "SKIP_NO_ITEMS",
    "compute_balance",
    "coerce_line_items",
    "consolidate_line_items",
    "filter_party",
    "sort_newest_first",
    "stock_after_issue",
    "stock_after_receipt",
    "total_weight_kg",
    "traced_engine",
    "validate_line_items",
]
