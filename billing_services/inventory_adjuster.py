"""
billing_services.inventory_adjuster -- Stock mutations driven by sales and purchases.

Responsibility:
    Translate the line items of a completed sale or purchase into stock
    changes on each named item and on the universal Bardana item, with
    the kg -> bag conversion and sale idempotence.

Architecture position:
    Services -- orchestration over billing_engines.stock + the backend.
    Composes a ProcessedTransactionStore (constructor-injected).

Invariants enforced:
    - Bardana moves by the total kg of all line items, 1 kg per 1 kg of
      product, whichever product it was.
    - Sales clamp each item at zero bags; purchases and reversals only add.
    - A sale id already in the processed store is a no-op.  Only sales
      consult the store; purchases and reversals never do.
    - The per-item loop is best effort: a missing item is SKIPPED, a
      backend failure is FAILED, the remaining items still run.

Failure modes:
    - ValidationError for malformed line items, before any mutation.
    - UpdateError from the Bardana step aborts the call; no item has been
      touched yet and the sale id is not recorded.
    - FetchError from the query helpers propagates; an item that simply
      does not exist reads as 0 kg.

Audit relevance:
    Every applied, skipped and failed item is logged with the transaction
    id from LogContext, and returned in AdjustmentResult.outcomes.

Usage:
    adjuster = InventoryAdjuster(backend)
    result = adjuster.apply_on_sale(invoice.items, transaction_id=invoice.id)
    if result.is_duplicate:
        ...
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Iterable, Mapping, Union

from billing_engines.stock import (
    SKIP_DUPLICATE,
    SKIP_NO_ITEMS,
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
from billing_kernel.domain.dtos import Item, LineItem
from billing_kernel.domain.units import ZERO, bags_to_kg, to_decimal
from billing_kernel.exceptions import BackendError, LookupMissError, ValidationError
from billing_kernel.logging_config import LogContext, get_logger
from billing_services.backend import PersistenceBackend, StockOperation
from billing_services.processed_store import (
    InMemoryProcessedTransactionStore,
    ProcessedTransactionStore,
)

logger = get_logger("services.inventory")

LineItemInput = Iterable[Union[LineItem, Mapping[str, Any]]]


def _required_kg(value: Decimal | int | str) -> Decimal:
    try:
        return to_decimal(value, default=None)
    except ValueError:
        raise ValidationError(f"not a number: {value!r}", field="required_kg") from None


class InventoryAdjuster:
    """
    Applies and reverts stock changes for sales and purchases.

    Contract:
        Receives the backend and an optional processed-transaction store
        via constructor injection.  Without a store, the adjuster owns a
        fresh in-memory one; nothing is shared between instances.
    """

    def __init__(
        self,
        backend: PersistenceBackend,
        processed_store: ProcessedTransactionStore | None = None,
    ) -> None:
        self._backend = backend
        self._processed = (
            processed_store if processed_store is not None else InMemoryProcessedTransactionStore()
        )

    @property
    def processed_store(self) -> ProcessedTransactionStore:
        return self._processed

    # ------------------------------------------------------------------
    # Adjustments
    # ------------------------------------------------------------------

    def apply_on_sale(
        self, line_items: LineItemInput, transaction_id: str | None = None
    ) -> AdjustmentResult:
        """
        Deduct sold quantities from each item and from Bardana.

        Returns a SKIPPED result for empty input or an already-processed
        transaction id; otherwise APPLIED with one outcome per distinct item.
        """
        direction = AdjustmentDirection.SALE
        with LogContext.bind(transaction_id=transaction_id, operation="apply_on_sale"):
            items = self._prepare(line_items)
            if not items:
                logger.info("stock_adjustment_skipped", extra={"reason": SKIP_NO_ITEMS})
                return AdjustmentResult.skipped(direction, SKIP_NO_ITEMS, transaction_id)

            if transaction_id and self._processed.has(transaction_id):
                logger.info("stock_adjustment_skipped", extra={"reason": SKIP_DUPLICATE})
                return AdjustmentResult.skipped(direction, SKIP_DUPLICATE, transaction_id)

            result = self._apply(direction, items, transaction_id)

            if transaction_id:
                self._processed.add(transaction_id)
            return result

    def apply_on_purchase(
        self, line_items: LineItemInput, transaction_id: str | None = None
    ) -> AdjustmentResult:
        """Add purchased quantities to each item and to Bardana (no dedup)."""
        direction = AdjustmentDirection.PURCHASE
        with LogContext.bind(transaction_id=transaction_id, operation="apply_on_purchase"):
            items = self._prepare(line_items)
            if not items:
                logger.info("stock_adjustment_skipped", extra={"reason": SKIP_NO_ITEMS})
                return AdjustmentResult.skipped(direction, SKIP_NO_ITEMS, transaction_id)
            return self._apply(direction, items, transaction_id)

    def revert_on_sale(
        self, line_items: LineItemInput, transaction_id: str | None = None
    ) -> AdjustmentResult:
        """
        Restore stock for a deleted or cancelled sale.

        Adds back without a clamp and leaves the processed store alone, so
        the original sale id stays recorded.
        """
        direction = AdjustmentDirection.SALE_REVERSAL
        with LogContext.bind(transaction_id=transaction_id, operation="revert_on_sale"):
            items = self._prepare(line_items)
            if not items:
                logger.info("stock_adjustment_skipped", extra={"reason": SKIP_NO_ITEMS})
                return AdjustmentResult.skipped(direction, SKIP_NO_ITEMS, transaction_id)
            return self._apply(direction, items, transaction_id)

    def _prepare(self, line_items: LineItemInput | None) -> list[LineItem]:
        items = coerce_line_items(line_items or ())
        validate_line_items(items)
        return items

    def _apply(
        self,
        direction: AdjustmentDirection,
        items: list[LineItem],
        transaction_id: str | None,
    ) -> AdjustmentResult:
        issuing = direction == AdjustmentDirection.SALE
        total_kg = total_weight_kg(items)

        # Whole-call step: a failure here propagates before any item changes.
        if total_kg > 0:
            operation = StockOperation.SUBTRACT if issuing else StockOperation.ADD
            self._backend.update_bardana_stock(operation, total_kg)
            logger.info(
                "bardana_stock_adjusted",
                extra={"operation": operation.value, "quantity_kg": total_kg},
            )

        outcomes = [
            self._adjust_item(name, quantity_kg, issuing)
            for name, quantity_kg in consolidate_line_items(items).items()
        ]

        result = AdjustmentResult(
            direction=direction,
            status=AdjustmentStatus.APPLIED,
            transaction_id=transaction_id,
            bardana_delta_kg=-total_kg if issuing else total_kg,
            outcomes=tuple(outcomes),
        )
        logger.info(
            "stock_adjustment_applied",
            extra={
                "direction": direction.value,
                "applied": len(result.applied_items),
                "skipped": len(result.skipped_items),
                "failed": len(result.failed_items),
            },
        )
        return result

    def _adjust_item(
        self, item_name: str, quantity_kg: Decimal, issuing: bool
    ) -> ItemAdjustmentOutcome:
        try:
            item = self._find_item(item_name)
            previous = item.opening_stock
            if issuing:
                new_stock = stock_after_issue(previous, quantity_kg)
            else:
                new_stock = stock_after_receipt(previous, quantity_kg)
            self._backend.update_item(item.id, {"openingStock": new_stock})
        except LookupMissError:
            logger.warning("stock_item_not_found", extra={"item_name": item_name})
            return ItemAdjustmentOutcome.skipped(item_name, quantity_kg, SKIP_NOT_FOUND)
        except BackendError as exc:
            logger.warning(
                "stock_item_update_failed",
                extra={"item_name": item_name, "error": str(exc), "status": exc.status},
            )
            return ItemAdjustmentOutcome.failed(item_name, quantity_kg, str(exc))

        logger.debug(
            "stock_item_adjusted",
            extra={"item_name": item_name, "previous_bags": previous, "new_bags": new_stock},
        )
        return ItemAdjustmentOutcome.applied(item_name, quantity_kg, previous, new_stock)

    def _find_item(self, item_name: str) -> Item:
        """Exact product-name match; the backend search is a substring filter."""
        for item in self._backend.list_items(search=item_name):
            if item.product_name == item_name and item.id:
                return item
        raise LookupMissError(item_name)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_item_stock_kg(self, item_name: str) -> Decimal:
        """Current stock of an item in kg; 0 if no item has that name."""
        try:
            item = self._find_item(item_name)
        except LookupMissError:
            return ZERO
        return bags_to_kg(item.opening_stock)

    def has_sufficient_stock(self, item_name: str, required_kg: Decimal | int | str) -> bool:
        return self.get_item_stock_kg(item_name) >= _required_kg(required_kg)

    def get_bardana_stock_kg(self) -> Decimal:
        return bags_to_kg(self._backend.get_bardana().opening_stock)

    def has_sufficient_bardana_stock(self, required_kg: Decimal | int | str) -> bool:
        return self.get_bardana_stock_kg() >= _required_kg(required_kg)

    def list_low_stock_items(self) -> list[Item]:
        """Items whose stock (bags) is at or below their alert level (bags)."""
        return [item for item in self._backend.list_items() if item.is_low_stock]

    def initialize_bardana(self) -> Item:
        """Make sure the universal Bardana item exists."""
        bardana = self._backend.initialize_bardana()
        logger.info("bardana_initialized", extra={"stock_bags": bardana.opening_stock})
        return bardana

    # ------------------------------------------------------------------
    # Processed-transaction record
    # ------------------------------------------------------------------

    def is_processed(self, transaction_id: str) -> bool:
        return self._processed.has(transaction_id)

    def remove_processed(self, transaction_id: str) -> bool:
        return self._processed.remove(transaction_id)

    def clear_processed(self) -> None:
        self._processed.clear()
        logger.info("processed_transactions_cleared")

    def processed_count(self) -> int:
        return self._processed.count()

    def list_processed(self) -> list[str]:
        return self._processed.list()
