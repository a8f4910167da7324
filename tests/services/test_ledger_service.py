"""
Tests for LedgerEngine over the in-memory backend.

Covers:
- fetch_and_compute_balance for the mixed scenario
- Party filtering across sales, purchases and payments
- Statement order
- Fetch failure policy (strict and lenient, all categories)
- Unknown payment types
- list_parties_with_balances
"""

from datetime import date
from decimal import Decimal

import pytest

from billing_kernel.domain.dtos import Payment, TransactionKind
from billing_kernel.exceptions import FetchError
from billing_services.ledger_service import LedgerEngine

RAMESH = ("Ramesh Traders", "9876543210")
SITA = ("Sita Stores", "9123456780")


def _fail(resource: str):
    def _raise(*args, **kwargs):
        raise FetchError(resource, "connection refused")

    return _raise


class TestFetchAndComputeBalance:
    """Balance recomputed from the backend's documents."""

    def test_mixed_scenario(self, ledger):
        result = ledger.fetch_and_compute_balance(*RAMESH)

        assert result.balance == Decimal("250")
        assert result.total_invoiced == Decimal("500")
        assert result.total_billed == Decimal("100")
        assert result.total_payment_in == Decimal("200")
        assert result.total_payment_out == Decimal("50")
        assert result.transaction_count == 4

    def test_name_case_insensitive(self, ledger):
        result = ledger.fetch_and_compute_balance("ramesh TRADERS", RAMESH[1])
        assert result.balance == Decimal("250")

    def test_other_party_isolated(self, ledger):
        result = ledger.fetch_and_compute_balance(*SITA)
        assert result.balance == Decimal("75")
        assert result.transaction_count == 1

    def test_unknown_party_zero(self, ledger):
        result = ledger.fetch_and_compute_balance("Nobody", "0")
        assert result.balance == Decimal("0")
        assert result.transaction_count == 0

    def test_three_reads(self, ledger, ledger_backend):
        ledger.fetch_and_compute_balance(*RAMESH)
        assert sorted(ledger_backend.calls) == ["list_payments", "list_purchases", "list_sales"]

    def test_unknown_payment_type_skipped(self, ledger, ledger_backend, captured_logs):
        ledger_backend.add_payment(
            Payment(
                id="payment-x", payment_no="PAY-X", payment_type="refund",
                party_name=RAMESH[0], phone_number=RAMESH[1], amount=Decimal("1000"),
            )
        )

        result = ledger.fetch_and_compute_balance(*RAMESH)

        assert result.balance == Decimal("250")
        assert any(r["message"] == "unknown_payment_type_skipped" for r in captured_logs())

    def test_party_key_in_log_context(self, ledger, captured_logs):
        ledger.fetch_and_compute_balance(*RAMESH)

        record = next(r for r in captured_logs() if r["message"] == "party_balance_computed")
        assert record["party_key"] == "ramesh traders-9876543210"
        assert record["operation"] == "fetch_and_compute_balance"


class TestFetchPolicy:
    """One policy for every category."""

    @pytest.mark.parametrize("method", ["list_sales", "list_purchases", "list_payments"])
    def test_strict_propagates(self, ledger_backend, monkeypatch, method):
        monkeypatch.setattr(ledger_backend, method, _fail(method))
        ledger = LedgerEngine(ledger_backend, strict_fetch=True)

        with pytest.raises(FetchError):
            ledger.fetch_and_compute_balance(*RAMESH)

    @pytest.mark.parametrize(
        "method, expected",
        [
            ("list_sales", Decimal("-250")),  # 0 - 100 - 200 + 50
            ("list_purchases", Decimal("350")),  # 500 - 0 - 200 + 50
            ("list_payments", Decimal("400")),  # 500 - 100
        ],
    )
    def test_lenient_treats_category_as_empty(
        self, ledger_backend, monkeypatch, captured_logs, method, expected
    ):
        monkeypatch.setattr(ledger_backend, method, _fail(method))
        ledger = LedgerEngine(ledger_backend, strict_fetch=False)

        assert ledger.fetch_and_compute_balance(*RAMESH).balance == expected
        warnings = [r for r in captured_logs() if r["message"] == "ledger_category_fetch_failed"]
        assert len(warnings) == 1
        assert warnings[0]["level"] == "WARNING"


class TestPartyTransactions:
    """The party statement."""

    def test_newest_first(self, ledger):
        txns = ledger.list_party_transactions(*RAMESH)

        assert [t.id for t in txns] == ["payment-2", "payment-1", "sale-1", "purchase-1"]
        assert txns[0].kind == TransactionKind.PAYMENT_OUT
        assert txns[-1].date == date(2024, 1, 5)

    def test_compute_balance_from_statement(self, ledger):
        txns = ledger.list_party_transactions(*RAMESH)
        assert ledger.compute_balance(txns).balance == Decimal("250")


class TestPartiesWithBalances:
    """Every party merged with its recomputed balance."""

    def test_all_parties(self, ledger):
        rows = {row.party.name: row for row in ledger.list_parties_with_balances()}

        assert set(rows) == {RAMESH[0], SITA[0]}
        assert rows[RAMESH[0]].breakdown.balance == Decimal("250")
        assert rows[SITA[0]].breakdown.balance == Decimal("75")

    def test_stored_balance_is_advisory(self, ledger):
        row = next(r for r in ledger.list_parties_with_balances() if r.party.name == RAMESH[0])
        merged = row.to_dict()

        assert merged["balance"] == Decimal("999")
        assert merged["calculated_balance"] == Decimal("250")

    def test_party_fetch_failure_propagates_even_when_lenient(self, ledger_backend, monkeypatch):
        monkeypatch.setattr(ledger_backend, "list_parties", _fail("parties"))
        ledger = LedgerEngine(ledger_backend, strict_fetch=False)

        with pytest.raises(FetchError):
            ledger.list_parties_with_balances()

    def test_no_parties(self):
        from billing_services.memory_backend import InMemoryBackend

        assert LedgerEngine(InMemoryBackend()).list_parties_with_balances() == []
