#!/usr/bin/env python3
"""
Query party balances and stock from the command line.

Settings come from --config (YAML) and BILLING_* environment variables.
With --offline the commands run against a seeded in-memory backend
instead of the REST API.

Usage:
    python3 scripts/billing_cli.py [--config PATH] [--offline] <command> [args]

Examples:
    # Net balance of one party
    python3 scripts/billing_cli.py balance "Ramesh Traders" 9876543210

    # Statement, newest first
    python3 scripts/billing_cli.py statement "Ramesh Traders" 9876543210

    # Every party with its recomputed balance
    python3 scripts/billing_cli.py parties

    # Stock of one item / Bardana / items at or below their alert level
    python3 scripts/billing_cli.py stock Wheat
    python3 scripts/billing_cli.py bardana
    python3 scripts/billing_cli.py low-stock

    # Make sure the universal Bardana item exists
    python3 scripts/billing_cli.py init-bardana
"""

from __future__ import annotations

import argparse
import json
import sys
from datetime import date
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Sequence

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from billing_kernel.config import load_settings  # noqa: E402
from billing_kernel.domain.dtos import (  # noqa: E402
    BARDANA_NAME,
    Bill,
    Invoice,
    Item,
    ItemCategory,
    LineItem,
    Party,
    Payment,
)
from billing_kernel.exceptions import BillingKernelError  # noqa: E402
from billing_services.memory_backend import InMemoryBackend  # noqa: E402
from billing_services.wiring import BillingServices, build_services  # noqa: E402


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=_json_default))


def _item_view(item: Item) -> dict[str, Any]:
    return {
        "id": item.id,
        "product_name": item.product_name,
        "category": item.category,
        "stock_bags": item.opening_stock,
        "stock_kg": item.stock_kg,
        "low_stock_alert_bags": item.low_stock_alert,
        "is_universal": item.is_universal,
    }


def demo_backend() -> InMemoryBackend:
    """A small offline data set: two parties, three items and a few documents."""
    backend = InMemoryBackend()
    backend.add_party(Party(name="Ramesh Traders", phone_number="9876543210"))
    backend.add_party(Party(name="Sita Stores", phone_number="9123456780"))
    backend.add_item(
        Item(product_name=BARDANA_NAME, opening_stock=Decimal("100"), is_universal=True)
    )
    backend.add_item(
        Item(
            product_name="Wheat",
            opening_stock=Decimal("50"),
            low_stock_alert=Decimal("10"),
            purchase_price=Decimal("25"),
            sale_price=Decimal("30"),
        )
    )
    backend.add_item(
        Item(
            product_name="Sugar",
            category=ItemCategory.KIRANA.value,
            opening_stock=Decimal("2"),
            low_stock_alert=Decimal("5"),
            purchase_price=Decimal("40"),
            sale_price=Decimal("45"),
        )
    )
    backend.add_sale(
        Invoice(
            id="sale-1",
            invoice_no="INV-001",
            party_name="Ramesh Traders",
            phone_number="9876543210",
            total_amount=Decimal("1500"),
            date=date(2024, 3, 1),
            items=(LineItem("Wheat", Decimal("50"), Decimal("30")),),
        )
    )
    backend.add_purchase(
        Bill(
            id="purchase-1",
            bill_no="BILL-001",
            party_name="Sita Stores",
            phone_number="9123456780",
            total_amount=Decimal("800"),
            date=date(2024, 3, 2),
            items=(LineItem("Sugar", Decimal("20"), Decimal("40")),),
        )
    )
    backend.add_payment(
        Payment(
            id="payment-1",
            payment_no="PAY-001",
            payment_type="payment-in",
            party_name="Ramesh Traders",
            phone_number="9876543210",
            amount=Decimal("1000"),
            date=date(2024, 3, 5),
            payment_method="cash",
        )
    )
    return backend


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Party balances and stock levels from the billing backend.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--config", type=Path, default=None, help="YAML settings file.")
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Use a seeded in-memory backend instead of the REST API.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("balance", "Net balance and breakdown of one party."),
        ("statement", "Transactions of one party, newest first."),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("name", help="Party name (case-insensitive).")
        cmd.add_argument("phone", help="Party phone number (exact).")

    sub.add_parser("parties", help="Every party with its recomputed balance.")
    stock = sub.add_parser("stock", help="Stock of one item in kg.")
    stock.add_argument("item", help="Exact product name.")
    sub.add_parser("bardana", help="Bardana stock in kg.")
    sub.add_parser("low-stock", help="Items at or below their low-stock alert.")
    sub.add_parser("init-bardana", help="Create the Bardana item if it is missing.")
    return parser.parse_args(argv)


def run(args: argparse.Namespace, services: BillingServices) -> Any:
    """Execute one command and return its JSON-ready result."""
    if args.command == "balance":
        breakdown = services.ledger.fetch_and_compute_balance(args.name, args.phone)
        return {"name": args.name, "phone_number": args.phone, **breakdown.to_dict()}
    if args.command == "statement":
        txns = services.ledger.list_party_transactions(args.name, args.phone)
        return [txn.to_dict() for txn in txns]
    if args.command == "parties":
        return [row.to_dict() for row in services.ledger.list_parties_with_balances()]
    if args.command == "stock":
        return {"item": args.item, "stock_kg": services.inventory.get_item_stock_kg(args.item)}
    if args.command == "bardana":
        return {"item": BARDANA_NAME, "stock_kg": services.inventory.get_bardana_stock_kg()}
    if args.command == "low-stock":
        return [_item_view(item) for item in services.inventory.list_low_stock_items()]
    if args.command == "init-bardana":
        return _item_view(services.inventory.initialize_bardana())
    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    try:
        settings = load_settings(args.config)
        backend = demo_backend() if args.offline else None
        services = build_services(settings, backend=backend)
        result = run(args, services)
    except BillingKernelError as e:
        print(f"ERROR [{e.code}]: {e}", file=sys.stderr)
        return 1
    _print_json(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
