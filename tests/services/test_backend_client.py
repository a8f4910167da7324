"""
Tests for the REST backend client.

The requests session is replaced with a Mock; each test sets the response
the backend would return and checks the request that was sent.
"""

from decimal import Decimal
from unittest.mock import Mock

import pytest
import requests

from billing_kernel.domain.dtos import Item
from billing_kernel.exceptions import FetchError, UpdateError
from billing_services.backend import PersistenceBackend, StockOperation
from billing_services.client import BackendClient, to_wire

BASE_URL = "http://billing.test"


def _response(body=None, status: int = 200, invalid_json: bool = False) -> Mock:
    response = Mock()
    response.status_code = status
    response.ok = 200 <= status < 400
    if invalid_json:
        response.json.side_effect = ValueError("no json")
    else:
        response.json.return_value = body
    return response


def _ok(data) -> Mock:
    return _response({"success": True, "data": data})


@pytest.fixture
def session() -> Mock:
    return Mock(spec=requests.Session)


@pytest.fixture
def client(session) -> BackendClient:
    return BackendClient(BASE_URL + "/", timeout=5.0, session=session)


def _sent(session: Mock) -> tuple[str, str, dict]:
    args, kwargs = session.request.call_args
    return args[0], args[1], kwargs


ITEM_RECORD = {
    "_id": "item-1",
    "productName": "Wheat",
    "category": "Primary",
    "openingStock": 50,
    "lowStockAlert": 10,
    "purchasePrice": 25,
    "salePrice": 30,
    "isUniversal": False,
}


class TestProtocol:
    """The client is a PersistenceBackend."""

    def test_satisfies_protocol(self, client):
        assert isinstance(client, PersistenceBackend)


class TestReads:
    """GET endpoints and record parsing."""

    def test_list_sales(self, client, session):
        session.request.return_value = _ok(
            [
                {
                    "_id": "s1",
                    "invoiceNo": "INV-1",
                    "partyName": "Ramesh",
                    "phoneNumber": "1",
                    "totalAmount": 500,
                    "date": "2024-01-10T00:00:00.000Z",
                    "items": [{"itemName": "Wheat", "quantity": 20, "rate": 25}],
                }
            ]
        )

        sales = client.list_sales()

        method, url, kwargs = _sent(session)
        assert (method, url) == ("GET", f"{BASE_URL}/api/sales")
        assert kwargs["timeout"] == 5.0
        assert sales[0].id == "s1"
        assert sales[0].total_amount == Decimal("500")
        assert sales[0].items[0].total == Decimal("500")

    def test_list_payments_type_filter(self, client, session):
        session.request.return_value = _ok([])

        client.list_payments(payment_type="payment-in")

        _, _, kwargs = _sent(session)
        assert kwargs["params"] == {"type": "payment-in"}

    def test_list_payments_all_has_no_filter(self, client, session):
        session.request.return_value = _ok([])

        client.list_payments()

        _, _, kwargs = _sent(session)
        assert kwargs["params"] is None

    def test_list_items_filters(self, client, session):
        session.request.return_value = _ok([ITEM_RECORD])

        items = client.list_items(search="Whe", category="Primary", is_universal=False)

        _, url, kwargs = _sent(session)
        assert url == f"{BASE_URL}/api/items"
        assert kwargs["params"] == {"search": "Whe", "category": "Primary", "isUniversal": "false"}
        assert items[0].opening_stock == Decimal("50")

    def test_get_party(self, client, session):
        session.request.return_value = _ok({"_id": "p1", "name": "Sita", "phoneNumber": "2"})

        party = client.get_party("p1")

        _, url, _ = _sent(session)
        assert url == f"{BASE_URL}/api/parties/p1"
        assert party.name == "Sita"

    def test_get_bardana(self, client, session):
        session.request.return_value = _ok({**ITEM_RECORD, "productName": "Bardana"})

        assert client.get_bardana().is_bardana


class TestReadFailures:
    """Every read failure becomes FetchError."""

    def test_transport_error(self, client, session):
        session.request.side_effect = requests.ConnectionError("refused")

        with pytest.raises(FetchError, match="network error"):
            client.list_sales()

    def test_http_error_carries_status_and_details(self, client, session):
        session.request.return_value = _response(
            {"success": False, "error": "Not found", "details": ["no such party"]}, status=404
        )

        with pytest.raises(FetchError) as exc_info:
            client.get_party("nope")

        assert exc_info.value.status == 404
        assert exc_info.value.reason == "Not found"
        assert exc_info.value.details == ["no such party"]
        assert exc_info.value.resource == "party"

    def test_success_false(self, client, session):
        session.request.return_value = _response({"success": False, "error": "DB down"})

        with pytest.raises(FetchError, match="DB down"):
            client.list_purchases()

    def test_invalid_json(self, client, session):
        session.request.return_value = _response(invalid_json=True)

        with pytest.raises(FetchError, match="not valid JSON"):
            client.list_parties()

    def test_list_expected(self, client, session):
        session.request.return_value = _ok({"not": "a list"})

        with pytest.raises(FetchError, match="expected a list"):
            client.list_sales()

    def test_malformed_row(self, client, session):
        session.request.return_value = _ok(["not a record"])

        with pytest.raises(FetchError, match="malformed record"):
            client.list_items()


class TestWrites:
    """PUT/POST/DELETE endpoints."""

    def test_update_item(self, client, session):
        session.request.return_value = _ok({**ITEM_RECORD, "openingStock": 48})

        item = client.update_item("item-1", {"openingStock": Decimal("48.00")})

        method, url, kwargs = _sent(session)
        assert (method, url) == ("PUT", f"{BASE_URL}/api/items/item-1")
        assert kwargs["json"] == {"openingStock": 48.0}
        assert item.opening_stock == Decimal("48")

    def test_update_bardana_stock(self, client, session):
        session.request.return_value = _ok({**ITEM_RECORD, "productName": "Bardana"})

        client.update_bardana_stock(StockOperation.SUBTRACT, Decimal("90"))

        method, url, kwargs = _sent(session)
        assert (method, url) == ("PUT", f"{BASE_URL}/api/items/bardana/stock")
        assert kwargs["json"] == {"operation": "subtract", "quantity": 90.0}

    def test_create_item(self, client, session):
        session.request.return_value = _ok({**ITEM_RECORD, "_id": "item-9", "productName": "Maize"})

        created = client.create_item(Item("Maize", opening_stock=Decimal("3.33")))

        method, url, kwargs = _sent(session)
        assert (method, url) == ("POST", f"{BASE_URL}/api/items")
        assert kwargs["json"]["productName"] == "Maize"
        assert kwargs["json"]["openingStock"] == 3.33
        assert created.id == "item-9"

    def test_delete_item(self, client, session):
        session.request.return_value = _ok(None)

        client.delete_item("item-1")

        method, url, _ = _sent(session)
        assert (method, url) == ("DELETE", f"{BASE_URL}/api/items/item-1")

    def test_write_failure_is_update_error(self, client, session):
        session.request.return_value = _response(
            {"success": False, "error": "Universal items cannot be deleted"}, status=400
        )

        with pytest.raises(UpdateError) as exc_info:
            client.delete_item("item-0")

        assert exc_info.value.code == "UPDATE_FAILED"
        assert exc_info.value.status == 400


class TestInitializeBardana:
    """Idempotent initialization."""

    def test_created(self, client, session):
        session.request.return_value = _ok({**ITEM_RECORD, "productName": "Bardana", "isUniversal": True})

        bardana = client.initialize_bardana()

        method, url, _ = _sent(session)
        assert (method, url) == ("POST", f"{BASE_URL}/api/items/initialize-bardana")
        assert bardana.is_universal

    def test_already_exists_returns_existing(self, client, session):
        existing = {**ITEM_RECORD, "productName": "Bardana", "isUniversal": True, "openingStock": 12}
        session.request.side_effect = [
            _response({"success": False, "error": "Bardana item already exists"}, status=400),
            _ok(existing),
        ]

        bardana = client.initialize_bardana()

        assert bardana.opening_stock == Decimal("12")
        method, url, _ = _sent(session)
        assert (method, url) == ("GET", f"{BASE_URL}/api/items/bardana")

    def test_other_failure_propagates(self, client, session):
        session.request.return_value = _response({"success": False, "error": "boom"}, status=500)

        with pytest.raises(UpdateError):
            client.initialize_bardana()


class TestToWire:
    """JSON conversion of request payloads."""

    def test_nested(self):
        from datetime import date

        payload = {"a": Decimal("1.5"), "b": [Decimal("2")], "c": date(2024, 1, 2), "d": "x"}
        assert to_wire(payload) == {"a": 1.5, "b": [2.0], "c": "2024-01-02", "d": "x"}
