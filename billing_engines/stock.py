"""
Module: billing_engines.stock
Responsibility:
    Pure stock arithmetic for inventory adjustments: consolidating line
    items by name, the Bardana weight total, the floor-clamped sale
    deduction and the receipt addition, plus the outcome types an
    adjustment reports back.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import billing_kernel.

Invariants enforced:
    - Line items are consolidated by exact item name; quantities (kg) are
      summed, so consolidation order never matters.
    - Stock is persisted in bags: kg / 30, rounded to 2 decimal places.
    - A sale never drives stock below zero bags (clamped to exactly 0).
    - Receipts (purchases, sale reversals) only add; no clamp applies.

Failure modes:
    - ValidationError from ``coerce_line_items`` for a non-numeric quantity.
    - ValidationError from ``validate_line_items`` for an empty item name
      or a negative quantity.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Mapping, Sequence

from billing_kernel.domain.dtos import LineItem
from billing_kernel.domain.units import KG_PER_BAG, ZERO, round_bags, to_decimal
from billing_kernel.exceptions import ValidationError

SKIP_DUPLICATE = "duplicate"
SKIP_NO_ITEMS = "no_items"
SKIP_NOT_FOUND = "item_not_found"


class AdjustmentDirection(str, Enum):
    """Which document drove the adjustment."""

    SALE = "sale"
    PURCHASE = "purchase"
    SALE_REVERSAL = "sale_reversal"


class AdjustmentStatus(str, Enum):
    """Terminal state of a call that returned (a failed call raises)."""

    APPLIED = "applied"
    SKIPPED = "skipped"


class OutcomeStatus(str, Enum):
    """Terminal state of one consolidated item within a call."""

    APPLIED = "applied"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class ItemAdjustmentOutcome:
    """
    What happened to one consolidated item.

    Guarantees:
        - previous_bags/new_bags are set only when status is APPLIED.
        - reason is set when status is SKIPPED or FAILED.
    """

    item_name: str
    quantity_kg: Decimal
    status: OutcomeStatus
    reason: str | None = None
    previous_bags: Decimal | None = None
    new_bags: Decimal | None = None

    @classmethod
    def applied(
        cls, item_name: str, quantity_kg: Decimal, previous_bags: Decimal, new_bags: Decimal
    ) -> ItemAdjustmentOutcome:
        return cls(item_name, quantity_kg, OutcomeStatus.APPLIED,
                   previous_bags=previous_bags, new_bags=new_bags)

    @classmethod
    def skipped(cls, item_name: str, quantity_kg: Decimal, reason: str) -> ItemAdjustmentOutcome:
        return cls(item_name, quantity_kg, OutcomeStatus.SKIPPED, reason=reason)

    @classmethod
    def failed(cls, item_name: str, quantity_kg: Decimal, reason: str) -> ItemAdjustmentOutcome:
        return cls(item_name, quantity_kg, OutcomeStatus.FAILED, reason=reason)


@dataclass(frozen=True)
class AdjustmentResult:
    """Result of one apply/revert call."""

    direction: AdjustmentDirection
    status: AdjustmentStatus
    transaction_id: str | None = None
    bardana_delta_kg: Decimal = ZERO
    outcomes: tuple[ItemAdjustmentOutcome, ...] = field(default_factory=tuple)
    reason: str | None = None

    @classmethod
    def skipped(
        cls, direction: AdjustmentDirection, reason: str, transaction_id: str | None = None
    ) -> AdjustmentResult:
        return cls(direction, AdjustmentStatus.SKIPPED, transaction_id=transaction_id, reason=reason)

    @property
    def is_duplicate(self) -> bool:
        return self.status == AdjustmentStatus.SKIPPED and self.reason == SKIP_DUPLICATE

    def _with_status(self, status: OutcomeStatus) -> tuple[ItemAdjustmentOutcome, ...]:
        return tuple(o for o in self.outcomes if o.status == status)

    @property
    def applied_items(self) -> tuple[ItemAdjustmentOutcome, ...]:
        return self._with_status(OutcomeStatus.APPLIED)

    @property
    def skipped_items(self) -> tuple[ItemAdjustmentOutcome, ...]:
        return self._with_status(OutcomeStatus.SKIPPED)

    @property
    def failed_items(self) -> tuple[ItemAdjustmentOutcome, ...]:
        return self._with_status(OutcomeStatus.FAILED)

    def outcome_for(self, item_name: str) -> ItemAdjustmentOutcome | None:
        for outcome in self.outcomes:
            if outcome.item_name == item_name:
                return outcome
        return None


def coerce_line_items(line_items: Iterable[LineItem | Mapping[str, Any]]) -> list[LineItem]:
    """
    Accept LineItems or raw backend rows (``itemName``/``quantity``/``rate``).

    A row whose quantity is missing or not a number raises ValidationError
    instead of being read as 0.
    """
    coerced: list[LineItem] = []
    for index, item in enumerate(line_items):
        if isinstance(item, Mapping):
            try:
                item = LineItem(
                    item_name=item.get("itemName") or "",
                    quantity=item.get("quantity"),
                    rate=to_decimal(item.get("rate")),
                )
            except ValueError as exc:
                raise ValidationError(str(exc), field=f"line_items[{index}].quantity") from exc
        coerced.append(item)
    return coerced


def validate_line_items(line_items: Sequence[LineItem]) -> None:
    """Reject line items that cannot be applied; nothing has been mutated yet."""
    for index, item in enumerate(line_items):
        if not isinstance(item, LineItem):
            raise ValidationError(f"expected LineItem, got {type(item).__name__}",
                                  field=f"line_items[{index}]")
        if not item.item_name or not item.item_name.strip():
            raise ValidationError("item name is required", field=f"line_items[{index}].item_name")
        if item.quantity < 0:
            raise ValidationError(f"quantity cannot be negative ({item.quantity})",
                                  field=f"line_items[{index}].quantity")


def consolidate_line_items(line_items: Iterable[LineItem]) -> dict[str, Decimal]:
    """Total kg per distinct item name, in first-seen order."""
    totals: dict[str, Decimal] = {}
    for item in line_items:
        totals[item.item_name] = totals.get(item.item_name, ZERO) + item.quantity
    return totals


def total_weight_kg(line_items: Iterable[LineItem]) -> Decimal:
    """Sum of all quantities: 1 kg of Bardana moves per 1 kg of any product."""
    return sum((item.quantity for item in line_items), ZERO)


def stock_after_issue(current_bags: Decimal, quantity_kg: Decimal) -> Decimal:
    """Bags left after selling ``quantity_kg``; never below zero."""
    return max(ZERO, round_bags(current_bags - quantity_kg / KG_PER_BAG))


def stock_after_receipt(current_bags: Decimal, quantity_kg: Decimal) -> Decimal:
    """Bags after receiving (purchase or reverted sale) ``quantity_kg``."""
    return round_bags(current_bags + quantity_kg / KG_PER_BAG)
