"""
billing_services.ledger_service -- Party balances recomputed from transactions.

Responsibility:
    Fetch a party's sales, purchases and payments from the persistence
    backend, turn them into ``Transaction`` values and fold them with the
    pure ledger engine.  Also lists every party merged with its recomputed
    balance, and the party statement (newest first).

Architecture position:
    Services -- orchestration over billing_engines + the backend.

Invariants enforced:
    - The balance is always recomputed; the party's stored ``balance`` is
      carried alongside it but never used in the fold.
    - One fetch policy for all four categories (sales, purchases,
      payment-in, payment-out): ``strict_fetch=True`` propagates
      FetchError, ``strict_fetch=False`` logs a warning and treats the
      failed category as empty.  Payments in and out come from one fetch,
      so they fail together.

Failure modes:
    - FetchError from any category fetch when ``strict_fetch`` is True.
    - FetchError from the party list in ``list_parties_with_balances``
      regardless of ``strict_fetch``: without parties there is nothing to
      report.

Usage:
    ledger = LedgerEngine(backend)
    breakdown = ledger.fetch_and_compute_balance("Ramesh", "9876543210")
"""

from __future__ import annotations

from typing import Callable, Iterable, TypeVar

from billing_engines.ledger import (
    BalanceBreakdown,
    PartyBalance,
    compute_balance,
    filter_party,
    sort_newest_first,
)
from billing_kernel.domain.dtos import Party, Transaction
from billing_kernel.exceptions import FetchError
from billing_kernel.logging_config import LogContext, get_logger
from billing_services.backend import PersistenceBackend

logger = get_logger("services.ledger")

T = TypeVar("T")


class LedgerEngine:
    """
    Computes party balances over the persistence backend.

    Contract:
        Receives the backend via constructor injection.  Issues three reads
        per party (sales, purchases, payments); no caching.
    """

    def __init__(self, backend: PersistenceBackend, strict_fetch: bool = True) -> None:
        self._backend = backend
        self._strict_fetch = strict_fetch

    @property
    def strict_fetch(self) -> bool:
        return self._strict_fetch

    def compute_balance(self, transactions: Iterable[Transaction]) -> BalanceBreakdown:
        """Fold transactions already filtered to one party."""
        return compute_balance(transactions=list(transactions))

    def _fetch(self, category: str, fetch: Callable[[], list[T]]) -> list[T]:
        try:
            return fetch()
        except FetchError as exc:
            if self._strict_fetch:
                raise
            logger.warning(
                "ledger_category_fetch_failed",
                extra={"category": category, "error": str(exc), "status": exc.status},
            )
            return []

    def _fetch_transactions(self) -> list[Transaction]:
        transactions: list[Transaction] = []
        transactions.extend(
            Transaction.from_invoice(invoice)
            for invoice in self._fetch("sales", self._backend.list_sales)
        )
        transactions.extend(
            Transaction.from_bill(bill)
            for bill in self._fetch("purchases", self._backend.list_purchases)
        )
        for payment in self._fetch("payments", self._backend.list_payments):
            try:
                transactions.append(Transaction.from_payment(payment))
            except ValueError:
                logger.warning(
                    "unknown_payment_type_skipped",
                    extra={"payment_id": payment.id, "payment_type": payment.payment_type},
                )
        return transactions

    def list_party_transactions(self, party_name: str, phone_number: str) -> list[Transaction]:
        """All transactions of one party, newest first."""
        with LogContext.bind(
            party_key=f"{party_name.lower()}-{phone_number}",
            operation="list_party_transactions",
        ):
            party_txns = filter_party(self._fetch_transactions(), party_name, phone_number)
            logger.debug(
                "party_transactions_listed",
                extra={"transaction_count": len(party_txns)},
            )
            return sort_newest_first(party_txns)

    def fetch_and_compute_balance(self, party_name: str, phone_number: str) -> BalanceBreakdown:
        """Fetch every category, filter to the party and fold."""
        with LogContext.bind(
            party_key=f"{party_name.lower()}-{phone_number}",
            operation="fetch_and_compute_balance",
        ):
            party_txns = filter_party(self._fetch_transactions(), party_name, phone_number)
            breakdown = self.compute_balance(party_txns)
            logger.info(
                "party_balance_computed",
                extra={
                    "balance": breakdown.balance,
                    "transaction_count": breakdown.transaction_count,
                },
            )
            return breakdown

    def list_parties_with_balances(self) -> list[PartyBalance]:
        """
        Every party merged with its recomputed balance.

        O(parties x transactions): each party triggers its own fetches, so
        the backend sees three reads per party.
        """
        with LogContext.bind(operation="list_parties_with_balances"):
            parties: list[Party] = self._backend.list_parties()
            results = [
                PartyBalance(
                    party=party,
                    breakdown=self.fetch_and_compute_balance(party.name, party.phone_number),
                )
                for party in parties
            ]
            logger.info("party_balances_listed", extra={"party_count": len(results)})
            return results
