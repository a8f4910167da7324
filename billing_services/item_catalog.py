"""
billing_services.item_catalog -- Catalog maintenance for inventory items.

Responsibility:
    Create, edit, delete and summarize catalog items.  Users enter stock
    and alert levels in kg; the catalog stores bags.

Invariants enforced:
    - Product names are unique (case-insensitive) across all items, and
      the Bardana name is reserved for the universal item.
    - The universal Bardana item is never created here, never deleted,
      and keeps its name and category.
    - Prices and stock are non-negative; category is Primary or Kirana.

Failure modes:
    - ValidationError for a bad field, DuplicateItemError for a name
      clash, UniversalItemError for a protected change.
    - FetchError / UpdateError from the backend propagate.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from billing_kernel.domain.clock import Clock, SystemClock
from billing_kernel.domain.dtos import BARDANA_NAME, Item, ItemCategory
from billing_kernel.domain.units import ZERO, kg_to_bags, to_decimal
from billing_kernel.exceptions import (
    DuplicateItemError,
    UniversalItemError,
    ValidationError,
)
from billing_kernel.logging_config import get_logger
from billing_services.backend import PersistenceBackend

logger = get_logger("services.catalog")

_CATEGORIES = frozenset(c.value for c in ItemCategory)


@dataclass(frozen=True)
class ItemSummary:
    """Counts and stock value over the whole catalog."""

    total_items: int
    primary_items: int
    kirana_items: int
    universal_items: int
    total_stock_value: Decimal
    low_stock_items: tuple[Item, ...]

    @property
    def low_stock_count(self) -> int:
        return len(self.low_stock_items)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_items": self.total_items,
            "primary_items": self.primary_items,
            "kirana_items": self.kirana_items,
            "universal_items": self.universal_items,
            "total_stock_value": self.total_stock_value,
            "low_stock_count": self.low_stock_count,
            "low_stock_items": [item.product_name for item in self.low_stock_items],
        }


def _non_negative(value: Any, field: str) -> Decimal:
    try:
        amount = to_decimal(value, default=None)
    except ValueError:
        raise ValidationError(f"not a number: {value!r}", field=field) from None
    if amount < 0:
        raise ValidationError("cannot be negative", field=field)
    return amount


def _category(value: str) -> str:
    if value not in _CATEGORIES:
        raise ValidationError(
            f"must be one of {', '.join(sorted(_CATEGORIES))}", field="category"
        )
    return value


class ItemCatalog:
    """
    Catalog operations over the persistence backend.

    Contract:
        Receives the backend and an optional Clock (for the default
        ``as_of_date``) via constructor injection.
    """

    def __init__(self, backend: PersistenceBackend, clock: Clock | None = None) -> None:
        self._backend = backend
        self._clock = clock or SystemClock()

    def list_items(self, category: str | None = None) -> list[Item]:
        return self._backend.list_items(category=category)

    def search(self, query: str) -> list[Item]:
        """Case-insensitive substring match on product name or category."""
        needle = query.strip().lower()
        items = self._backend.list_items()
        if not needle:
            return items
        return [
            item for item in items
            if needle in item.product_name.lower() or needle in item.category.lower()
        ]

    def _check_unique(self, product_name: str, exclude_id: str | None = None) -> None:
        """Reject a name already used by any item, Bardana included, even before it exists."""
        wanted = product_name.lower()
        if wanted == BARDANA_NAME.lower():
            raise DuplicateItemError(product_name)
        for item in self._backend.list_items():
            if item.id != exclude_id and item.product_name.lower() == wanted:
                raise DuplicateItemError(product_name)

    def create_item(
        self,
        product_name: str,
        category: str = ItemCategory.PRIMARY.value,
        purchase_price: Any = ZERO,
        sale_price: Any = ZERO,
        opening_stock_kg: Any = ZERO,
        low_stock_alert_kg: Any = ZERO,
        as_of_date: date | None = None,
    ) -> Item:
        """Validate, convert kg to bags and create a non-universal item."""
        name = (product_name or "").strip()
        if not name:
            raise ValidationError("product name is required", field="product_name")
        item = Item(
            product_name=name,
            category=_category(category),
            purchase_price=_non_negative(purchase_price, "purchase_price"),
            sale_price=_non_negative(sale_price, "sale_price"),
            opening_stock=kg_to_bags(_non_negative(opening_stock_kg, "opening_stock")),
            low_stock_alert=kg_to_bags(_non_negative(low_stock_alert_kg, "low_stock_alert")),
            as_of_date=as_of_date or self._clock.now_utc().date(),
            is_universal=False,
        )
        self._check_unique(name)

        created = self._backend.create_item(item)
        logger.info(
            "item_created",
            extra={"item_id": created.id, "product_name": name, "opening_stock_bags": item.opening_stock},
        )
        return created

    def update_item(
        self,
        item_id: str,
        product_name: str | None = None,
        category: str | None = None,
        purchase_price: Any = None,
        sale_price: Any = None,
        opening_stock_kg: Any = None,
        low_stock_alert_kg: Any = None,
        as_of_date: date | None = None,
    ) -> Item:
        """Patch the given fields; None leaves a field unchanged."""
        current = self._backend.get_item(item_id)
        patch: dict[str, Any] = {}

        if product_name is not None:
            name = product_name.strip()
            if not name:
                raise ValidationError("product name is required", field="product_name")
            if name != current.product_name:
                if current.is_universal:
                    raise UniversalItemError(current.product_name, "renamed")
                self._check_unique(name, exclude_id=item_id)
                patch["productName"] = name
        if category is not None and category != current.category:
            if current.is_universal:
                raise UniversalItemError(current.product_name, "recategorized")
            patch["category"] = _category(category)
        if purchase_price is not None:
            patch["purchasePrice"] = _non_negative(purchase_price, "purchase_price")
        if sale_price is not None:
            patch["salePrice"] = _non_negative(sale_price, "sale_price")
        if opening_stock_kg is not None:
            patch["openingStock"] = kg_to_bags(_non_negative(opening_stock_kg, "opening_stock"))
        if low_stock_alert_kg is not None:
            patch["lowStockAlert"] = kg_to_bags(
                _non_negative(low_stock_alert_kg, "low_stock_alert")
            )
        if as_of_date is not None:
            patch["asOfDate"] = as_of_date.isoformat()

        if not patch:
            return current
        updated = self._backend.update_item(item_id, patch)
        logger.info("item_updated", extra={"item_id": item_id, "fields": sorted(patch)})
        return updated

    def delete_item(self, item_id: str) -> None:
        item = self._backend.get_item(item_id)
        if item.is_universal:
            raise UniversalItemError(item.product_name, "deleted")
        self._backend.delete_item(item_id)
        logger.info("item_deleted", extra={"item_id": item_id, "product_name": item.product_name})

    def summary(self) -> ItemSummary:
        """Catalog totals; stock value is stock in kg times purchase price per kg."""
        items = self._backend.list_items()
        return ItemSummary(
            total_items=len(items),
            primary_items=sum(1 for i in items if i.category == ItemCategory.PRIMARY.value),
            kirana_items=sum(1 for i in items if i.category == ItemCategory.KIRANA.value),
            universal_items=sum(1 for i in items if i.is_universal),
            total_stock_value=sum((i.stock_kg * i.purchase_price for i in items), ZERO),
            low_stock_items=tuple(i for i in items if i.is_low_stock),
        )
