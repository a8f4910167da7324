"""
Tests for the stock arithmetic engine.

Covers:
- Consolidation by item name
- Bardana weight total
- Issue (floor-clamped) and receipt arithmetic in bags
- Line item coercion and validation
- AdjustmentResult views
"""

from decimal import Decimal

import pytest

from billing_engines.stock import (
    SKIP_DUPLICATE,
    SKIP_NOT_FOUND,
    AdjustmentDirection,
    AdjustmentResult,
    AdjustmentStatus,
    ItemAdjustmentOutcome,
    coerce_line_items,
    consolidate_line_items,
    stock_after_issue,
    stock_after_receipt,
    total_weight_kg,
    validate_line_items,
)
from billing_kernel.domain.dtos import LineItem
from billing_kernel.exceptions import ValidationError


class TestConsolidation:
    """Line items are summed per exact item name."""

    def test_sums_repeated_names(self):
        items = [LineItem("Wheat", 30), LineItem("Rice", 15), LineItem("Wheat", "12.5")]
        assert consolidate_line_items(items) == {
            "Wheat": Decimal("42.5"),
            "Rice": Decimal("15"),
        }

    def test_order_does_not_change_totals(self):
        items = [LineItem("Wheat", 30), LineItem("Rice", 15), LineItem("Wheat", 10)]
        assert consolidate_line_items(items) == consolidate_line_items(reversed(items))

    def test_names_are_case_sensitive(self):
        totals = consolidate_line_items([LineItem("Wheat", 1), LineItem("wheat", 1)])
        assert len(totals) == 2

    def test_total_weight(self):
        items = [LineItem("Wheat", 30), LineItem("Rice", "15.5")]
        assert total_weight_kg(items) == Decimal("45.5")

    def test_total_weight_empty(self):
        assert total_weight_kg([]) == Decimal("0")


class TestStockArithmetic:
    """Issue and receipt in bags."""

    def test_issue_converts_kg_to_bags(self):
        assert stock_after_issue(Decimal("50"), Decimal("60")) == Decimal("48.00")

    def test_issue_rounds_to_two_places(self):
        assert stock_after_issue(Decimal("10"), Decimal("10")) == Decimal("9.67")

    def test_issue_clamps_at_zero(self):
        result = stock_after_issue(Decimal("1"), Decimal("300"))
        assert result == Decimal("0")
        assert result >= 0

    def test_issue_exactly_to_zero(self):
        assert stock_after_issue(Decimal("1"), Decimal("30")) == Decimal("0")

    def test_receipt_adds_without_clamp(self):
        assert stock_after_receipt(Decimal("0"), Decimal("45")) == Decimal("1.50")

    def test_receipt_from_negative_stock(self):
        assert stock_after_receipt(Decimal("-2"), Decimal("30")) == Decimal("-1.00")


class TestCoercion:
    """Raw backend rows become LineItems."""

    def test_mapping_rows(self):
        items = coerce_line_items([{"itemName": "Wheat", "quantity": "30", "rate": 25}])
        assert items == [LineItem("Wheat", Decimal("30"), Decimal("25"))]

    def test_line_items_pass_through(self):
        item = LineItem("Rice", 5)
        assert coerce_line_items([item])[0] is item

    @pytest.mark.parametrize("quantity", [None, "", "ten"])
    def test_non_numeric_quantity_rejected(self, quantity):
        with pytest.raises(ValidationError) as exc_info:
            coerce_line_items([{"itemName": "Wheat", "quantity": quantity}])
        assert exc_info.value.field == "line_items[0].quantity"


class TestValidation:
    """Rejections happen before any mutation."""

    def test_valid_items_pass(self):
        validate_line_items([LineItem("Wheat", 0), LineItem("Rice", 5)])

    def test_empty_name_rejected(self):
        with pytest.raises(ValidationError, match="item name is required"):
            validate_line_items([LineItem("Wheat", 1), LineItem("  ", 1)])

    def test_negative_quantity_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_line_items([LineItem("Wheat", -1)])
        assert exc_info.value.field == "line_items[0].quantity"
        assert exc_info.value.code == "VALIDATION_FAILED"

    def test_wrong_type_rejected(self):
        with pytest.raises(ValidationError, match="expected LineItem"):
            validate_line_items(["Wheat"])


class TestAdjustmentResult:
    """Views over per-item outcomes."""

    def test_partitions_outcomes(self):
        result = AdjustmentResult(
            direction=AdjustmentDirection.SALE,
            status=AdjustmentStatus.APPLIED,
            outcomes=(
                ItemAdjustmentOutcome.applied("Wheat", Decimal("30"), Decimal("5"), Decimal("4")),
                ItemAdjustmentOutcome.skipped("Ghost", Decimal("1"), SKIP_NOT_FOUND),
                ItemAdjustmentOutcome.failed("Rice", Decimal("2"), "boom"),
            ),
        )

        assert [o.item_name for o in result.applied_items] == ["Wheat"]
        assert [o.item_name for o in result.skipped_items] == ["Ghost"]
        assert [o.item_name for o in result.failed_items] == ["Rice"]
        assert result.outcome_for("Rice").reason == "boom"
        assert result.outcome_for("Nothing") is None
        assert not result.is_duplicate

    def test_skipped_duplicate(self):
        result = AdjustmentResult.skipped(AdjustmentDirection.SALE, SKIP_DUPLICATE, "INV-1")
        assert result.is_duplicate
        assert result.outcomes == ()
        assert result.transaction_id == "INV-1"
