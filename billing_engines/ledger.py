"""
Module: billing_engines.ledger
Responsibility:
    Fold a party's transactions into a signed net balance and a per-kind
    breakdown.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import billing_kernel.domain.

Invariants enforced:
    - Fixed sign rule, independent of the running balance:
        invoice      +amount
        bill         -amount
        payment-in   -amount
        payment-out  +amount
    - Order independence: the fold is a plain Decimal sum, so any
      permutation of the input yields an identical breakdown.
    - Empty input yields the zero breakdown.

Failure modes:
    - None.  Malformed amounts were already coerced to 0 by ``Transaction``.

Usage:
    from billing_engines.ledger import compute_balance

    breakdown = compute_balance(transactions=party_transactions)
    breakdown.balance          # positive: the party owes the business
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Sequence

from billing_engines.tracer import traced_engine
from billing_kernel.domain.dtos import Party, Transaction, TransactionKind, same_party
from billing_kernel.domain.units import ZERO

SIGN_RULE: dict[TransactionKind, int] = {
    TransactionKind.INVOICE: 1,
    TransactionKind.BILL: -1,
    TransactionKind.PAYMENT_IN: -1,
    TransactionKind.PAYMENT_OUT: 1,
}


@dataclass(frozen=True)
class BalanceBreakdown:
    """
    Net balance of one party plus the totals per transaction kind.

    Contract:
        Derived, never persisted.  A pure function of the transaction list.
    Guarantees:
        - balance == total_invoiced - total_billed - total_payment_in
          + total_payment_out.
        - transaction_count is the number of transactions folded.
    """

    balance: Decimal = ZERO
    total_invoiced: Decimal = ZERO
    total_billed: Decimal = ZERO
    total_payment_in: Decimal = ZERO
    total_payment_out: Decimal = ZERO
    transaction_count: int = 0

    @classmethod
    def zero(cls) -> BalanceBreakdown:
        return cls()

    def to_dict(self) -> dict[str, Any]:
        return {
            "balance": self.balance,
            "total_invoiced": self.total_invoiced,
            "total_billed": self.total_billed,
            "total_payment_in": self.total_payment_in,
            "total_payment_out": self.total_payment_out,
            "transaction_count": self.transaction_count,
        }


@dataclass(frozen=True)
class PartyBalance:
    """A party merged with its recomputed balance breakdown."""

    party: Party
    breakdown: BalanceBreakdown

    def to_dict(self) -> dict[str, Any]:
        merged = self.party.to_dict()
        merged.update(self.breakdown.to_dict())
        # The stored figure stays visible next to the recomputed one.
        merged["balance"] = self.party.balance
        merged["calculated_balance"] = self.breakdown.balance
        return merged


@traced_engine("ledger", "1.0", fingerprint_fields=("transactions",))
def compute_balance(transactions: Iterable[Transaction]) -> BalanceBreakdown:
    """
    Fold transactions into a BalanceBreakdown using the fixed sign rule.

    Args:
        transactions: All transactions of one party, in any order.
    """
    totals = {kind: ZERO for kind in TransactionKind}
    count = 0
    for txn in transactions:
        totals[txn.kind] += txn.amount
        count += 1

    balance = sum(
        (totals[kind] * sign for kind, sign in SIGN_RULE.items()),
        ZERO,
    )
    return BalanceBreakdown(
        balance=balance,
        total_invoiced=totals[TransactionKind.INVOICE],
        total_billed=totals[TransactionKind.BILL],
        total_payment_in=totals[TransactionKind.PAYMENT_IN],
        total_payment_out=totals[TransactionKind.PAYMENT_OUT],
        transaction_count=count,
    )


def filter_party(
    transactions: Iterable[Transaction],
    party_name: str,
    phone_number: str,
) -> list[Transaction]:
    """Keep the transactions belonging to one party (name ignoring case, exact phone)."""
    return [
        txn
        for txn in transactions
        if same_party(txn.party_name, txn.phone_number, party_name, phone_number)
    ]


def sort_newest_first(transactions: Sequence[Transaction]) -> list[Transaction]:
    """Statement order: newest date first, undated transactions last."""
    return sorted(
        transactions,
        key=lambda txn: (txn.date is not None, txn.date or date.min),
        reverse=True,
    )
