"""
Domain DTOs -- immutable records exchanged with the backend.

Responsibility:
    Typed, frozen views of the backend's JSON records (parties, catalog
    items, sale invoices, purchase bills, payments) and the ledger's
    ``Transaction`` tagged union.  ``from_record`` parses the backend's
    camelCase JSON; ``to_record`` produces the payload the core writes.

Architecture position:
    Kernel > Domain -- pure data, zero I/O.

Invariants enforced:
    - Money, kilograms and bags are Decimal (see ``units.to_decimal``).
    - ``LineItem.total`` is always ``quantity * rate``; it is computed,
      never stored, so it cannot drift from its inputs.
    - Two parties are the same ledger subject when their names match
      case-insensitively and their phone numbers match exactly.
    - A transaction with a missing or malformed amount carries amount 0.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from billing_kernel.domain.units import ZERO, bags_to_kg, to_decimal

BARDANA_NAME = "Bardana"


class TransactionKind(str, Enum):
    """The four transaction kinds folded into a party's balance."""

    INVOICE = "invoice"
    BILL = "bill"
    PAYMENT_IN = "payment-in"
    PAYMENT_OUT = "payment-out"


class ItemCategory(str, Enum):
    """Catalog categories offered when creating an item."""

    PRIMARY = "Primary"
    KIRANA = "Kirana"


PAYMENT_KINDS: dict[str, TransactionKind] = {
    TransactionKind.PAYMENT_IN.value: TransactionKind.PAYMENT_IN,
    TransactionKind.PAYMENT_OUT.value: TransactionKind.PAYMENT_OUT,
}


# ---------------------------------------------------------------------------
# Record helpers
# ---------------------------------------------------------------------------


def parse_date(value: Any) -> date | None:
    """Parse a backend date (``YYYY-MM-DD`` or ISO timestamp); None if unusable."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def record_id(record: dict[str, Any]) -> str | None:
    """The record's id, accepting the backend's ``_id`` alias."""
    value = record.get("id") or record.get("_id")
    return str(value) if value is not None else None


def same_party(name_a: str, phone_a: str, name_b: str, phone_b: str) -> bool:
    """Case-insensitive name match plus exact phone match."""
    return (name_a or "").lower() == (name_b or "").lower() and (
        (phone_a or "") == (phone_b or "")
    )


# ---------------------------------------------------------------------------
# Party
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Party:
    """
    A counterparty (customer or supplier).

    ``balance`` is the backend's stored figure and is advisory only; the
    authoritative balance is always recomputed from transactions.
    """

    name: str
    phone_number: str
    id: str | None = None
    balance: Decimal = ZERO
    address: str | None = None
    email: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "balance", to_decimal(self.balance))

    @property
    def ledger_key(self) -> str:
        return f"{self.name.lower()}-{self.phone_number}"

    def matches(self, name: str, phone_number: str) -> bool:
        return same_party(self.name, self.phone_number, name, phone_number)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Party:
        return cls(
            id=record_id(record),
            name=record.get("name") or "",
            phone_number=record.get("phoneNumber") or "",
            balance=to_decimal(record.get("balance")),
            address=record.get("address"),
            email=record.get("email"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "phone_number": self.phone_number,
            "balance": self.balance,
            "address": self.address,
            "email": self.email,
        }


# ---------------------------------------------------------------------------
# Catalog item
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Item:
    """
    Catalog item.  ``opening_stock`` and ``low_stock_alert`` are in bags.

    Contract:
        The item named ``BARDANA_NAME`` is the single universal packaging
        item; it always exists and cannot be deleted.
    """

    product_name: str
    opening_stock: Decimal = ZERO
    low_stock_alert: Decimal = ZERO
    category: str = ItemCategory.PRIMARY.value
    purchase_price: Decimal = ZERO
    sale_price: Decimal = ZERO
    id: str | None = None
    as_of_date: date | None = None
    is_universal: bool = False

    def __post_init__(self) -> None:
        for name in ("opening_stock", "low_stock_alert", "purchase_price", "sale_price"):
            object.__setattr__(self, name, to_decimal(getattr(self, name)))

    @property
    def stock_kg(self) -> Decimal:
        """Current stock in kilograms, for display."""
        return bags_to_kg(self.opening_stock)

    @property
    def is_low_stock(self) -> bool:
        return self.opening_stock <= self.low_stock_alert

    @property
    def is_bardana(self) -> bool:
        return self.product_name == BARDANA_NAME

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Item:
        return cls(
            id=record_id(record),
            product_name=record.get("productName") or "",
            category=record.get("category") or ItemCategory.PRIMARY.value,
            purchase_price=to_decimal(record.get("purchasePrice")),
            sale_price=to_decimal(record.get("salePrice")),
            opening_stock=to_decimal(record.get("openingStock")),
            low_stock_alert=to_decimal(record.get("lowStockAlert")),
            as_of_date=parse_date(record.get("asOfDate")),
            is_universal=bool(record.get("isUniversal", False)),
        )

    def to_record(self) -> dict[str, Any]:
        """Backend payload for create; ids and timestamps are backend-owned."""
        return {
            "productName": self.product_name,
            "category": self.category,
            "purchasePrice": self.purchase_price,
            "salePrice": self.sale_price,
            "openingStock": self.opening_stock,
            "asOfDate": self.as_of_date.isoformat() if self.as_of_date else None,
            "lowStockAlert": self.low_stock_alert,
            "isUniversal": self.is_universal,
        }


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LineItem:
    """One row of a sale or purchase: quantity in kg, rate per kg."""

    item_name: str
    quantity: Decimal
    rate: Decimal = ZERO
    id: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "quantity", to_decimal(self.quantity, default=None))
        object.__setattr__(self, "rate", to_decimal(self.rate, default=None))

    @property
    def total(self) -> Decimal:
        return self.quantity * self.rate

    def with_quantity(self, quantity: Decimal | int | str) -> LineItem:
        return replace(self, quantity=quantity)

    def with_rate(self, rate: Decimal | int | str) -> LineItem:
        return replace(self, rate=rate)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> LineItem:
        # Any stored "total" is ignored; it is recomputed from quantity x rate.
        return cls(
            id=record_id(record),
            item_name=record.get("itemName") or "",
            quantity=to_decimal(record.get("quantity")),
            rate=to_decimal(record.get("rate")),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "itemName": self.item_name,
            "quantity": self.quantity,
            "rate": self.rate,
            "total": self.total,
        }


def _line_items(record: dict[str, Any]) -> tuple[LineItem, ...]:
    return tuple(LineItem.from_record(row) for row in record.get("items") or ())


@dataclass(frozen=True)
class Invoice:
    """Sale invoice."""

    id: str
    invoice_no: str
    party_name: str
    phone_number: str
    total_amount: Decimal
    date: date | None = None
    items: tuple[LineItem, ...] = field(default_factory=tuple)

    @property
    def line_total(self) -> Decimal:
        return sum((item.total for item in self.items), ZERO)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Invoice:
        return cls(
            id=record_id(record) or "",
            invoice_no=record.get("invoiceNo") or "",
            party_name=record.get("partyName") or "",
            phone_number=record.get("phoneNumber") or "",
            total_amount=to_decimal(record.get("totalAmount")),
            date=parse_date(record.get("date")),
            items=_line_items(record),
        )


@dataclass(frozen=True)
class Bill:
    """Purchase bill."""

    id: str
    bill_no: str
    party_name: str
    phone_number: str
    total_amount: Decimal
    date: date | None = None
    items: tuple[LineItem, ...] = field(default_factory=tuple)

    @property
    def line_total(self) -> Decimal:
        return sum((item.total for item in self.items), ZERO)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Bill:
        return cls(
            id=record_id(record) or "",
            bill_no=record.get("billNo") or "",
            party_name=record.get("partyName") or "",
            phone_number=record.get("phoneNumber") or "",
            total_amount=to_decimal(record.get("totalAmount")),
            date=parse_date(record.get("date")),
            items=_line_items(record),
        )


@dataclass(frozen=True)
class Payment:
    """Payment received from (``payment-in``) or made to (``payment-out``) a party."""

    id: str
    payment_no: str
    payment_type: str
    party_name: str
    phone_number: str
    amount: Decimal
    date: date | None = None
    payment_method: str | None = None
    description: str | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Payment:
        return cls(
            id=record_id(record) or "",
            payment_no=record.get("paymentNo") or "",
            payment_type=record.get("type") or "",
            party_name=record.get("partyName") or "",
            phone_number=record.get("phoneNumber") or "",
            amount=to_decimal(record.get("amount")),
            date=parse_date(record.get("date")),
            payment_method=record.get("paymentMethod"),
            description=record.get("description"),
        )


# ---------------------------------------------------------------------------
# Ledger transaction
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Transaction:
    """
    One ledger entry for a party: the tagged union over invoices, bills,
    payments in and payments out.
    """

    kind: TransactionKind
    id: str
    amount: Decimal
    party_name: str = ""
    phone_number: str = ""
    date: date | None = None
    reference: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", TransactionKind(self.kind))
        object.__setattr__(self, "amount", to_decimal(self.amount))

    @classmethod
    def from_invoice(cls, invoice: Invoice) -> Transaction:
        return cls(
            kind=TransactionKind.INVOICE,
            id=invoice.id,
            amount=invoice.total_amount,
            party_name=invoice.party_name,
            phone_number=invoice.phone_number,
            date=invoice.date,
            reference=invoice.invoice_no,
        )

    @classmethod
    def from_bill(cls, bill: Bill) -> Transaction:
        return cls(
            kind=TransactionKind.BILL,
            id=bill.id,
            amount=bill.total_amount,
            party_name=bill.party_name,
            phone_number=bill.phone_number,
            date=bill.date,
            reference=bill.bill_no,
        )

    @classmethod
    def from_payment(cls, payment: Payment) -> Transaction:
        """Raises ValueError for a payment type other than payment-in/out."""
        kind = PAYMENT_KINDS.get(payment.payment_type)
        if kind is None:
            raise ValueError(f"Unknown payment type: {payment.payment_type!r}")
        return cls(
            kind=kind,
            id=payment.id,
            amount=payment.amount,
            party_name=payment.party_name,
            phone_number=payment.phone_number,
            date=payment.date,
            reference=payment.payment_no,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.kind.value,
            "amount": self.amount,
            "party_name": self.party_name,
            "phone_number": self.phone_number,
            "date": self.date,
            "reference": self.reference,
        }
