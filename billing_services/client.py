"""
REST client for the billing backend.

Responsibility:
    Implements ``PersistenceBackend`` over HTTP with ``requests``.  Every
    response is a JSON envelope ``{success, data, error, details}``; this
    module unwraps it and turns records into domain DTOs.

Failure modes:
    - FetchError (reads) / UpdateError (writes) for: transport errors and
      timeouts, non-2xx status, ``success: false``, non-JSON bodies and
      records that cannot be parsed.
    - No retries; one request per call, bounded by ``timeout``.
"""

from __future__ import annotations

import time
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Mapping, TypeVar

import requests

from billing_kernel.domain.dtos import Bill, Invoice, Item, Party, Payment
from billing_kernel.exceptions import BackendError, FetchError, UpdateError
from billing_kernel.logging_config import get_logger
from billing_services.backend import StockOperation

logger = get_logger("services.client")

T = TypeVar("T")

_ALREADY_EXISTS = "already exists"


def to_wire(value: Any) -> Any:
    """Convert Decimals and dates for JSON: Decimal -> float, date -> ISO string."""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {k: to_wire(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_wire(v) for v in value]
    return value


class BackendClient:
    """
    HTTP implementation of the persistence backend.

    Args:
        base_url: Root URL, e.g. ``https://billing.example.com``.
        timeout: Per-request timeout in seconds.
        session: Optional ``requests.Session`` (connection reuse, tests).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        resource: str,
        error_cls: type[BackendError],
        params: Mapping[str, Any] | None = None,
        payload: Any = None,
    ) -> Any:
        url = f"{self._base_url}{path}"
        t0 = time.monotonic()
        try:
            response = self._session.request(
                method,
                url,
                params=dict(params) if params else None,
                json=to_wire(payload) if payload is not None else None,
                headers={"Content-Type": "application/json"},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            logger.warning(
                "backend_request_failed",
                extra={"method": method, "path": path, "error": str(exc)},
            )
            raise error_cls(resource, f"network error: {exc}") from exc

        duration_ms = round((time.monotonic() - t0) * 1000, 2)
        logger.debug(
            "backend_request",
            extra={
                "method": method,
                "path": path,
                "status": response.status_code,
                "duration_ms": duration_ms,
            },
        )

        try:
            body = response.json()
        except ValueError as exc:
            raise error_cls(
                resource, "response is not valid JSON", status=response.status_code
            ) from exc

        if not isinstance(body, dict):
            raise error_cls(resource, "unexpected response envelope", status=response.status_code)

        if not response.ok:
            raise error_cls(
                resource,
                body.get("error") or "Request failed",
                status=response.status_code,
                details=body.get("details"),
            )
        if not body.get("success"):
            raise error_cls(
                resource,
                body.get("error") or "API request failed",
                status=response.status_code,
                details=body.get("details"),
            )
        return body.get("data")

    def _get_list(
        self,
        path: str,
        resource: str,
        parser: Callable[[dict[str, Any]], T],
        params: Mapping[str, Any] | None = None,
    ) -> list[T]:
        data = self._request("GET", path, resource, FetchError, params=params)
        if not isinstance(data, list):
            raise FetchError(resource, "expected a list of records")
        try:
            return [parser(row) for row in data]
        except (AttributeError, TypeError, ValueError) as exc:
            raise FetchError(resource, f"malformed record: {exc}") from exc

    def _parse_one(
        self, data: Any, resource: str, parser: Callable[[dict[str, Any]], T],
        error_cls: type[BackendError],
    ) -> T:
        if not isinstance(data, dict):
            raise error_cls(resource, "expected a single record")
        try:
            return parser(data)
        except (AttributeError, TypeError, ValueError) as exc:
            raise error_cls(resource, f"malformed record: {exc}") from exc

    # ------------------------------------------------------------------
    # Sales, purchases, payments
    # ------------------------------------------------------------------

    def list_sales(self) -> list[Invoice]:
        return self._get_list("/api/sales", "sales", Invoice.from_record)

    def list_purchases(self) -> list[Bill]:
        return self._get_list("/api/purchases", "purchases", Bill.from_record)

    def list_payments(self, payment_type: str | None = None) -> list[Payment]:
        params = {}
        if payment_type and payment_type != "all":
            params["type"] = payment_type
        return self._get_list("/api/payments", "payments", Payment.from_record, params)

    # ------------------------------------------------------------------
    # Parties
    # ------------------------------------------------------------------

    def list_parties(self, search: str | None = None) -> list[Party]:
        params = {"search": search} if search else None
        return self._get_list("/api/parties", "parties", Party.from_record, params)

    def get_party(self, party_id: str) -> Party:
        data = self._request("GET", f"/api/parties/{party_id}", "party", FetchError)
        return self._parse_one(data, "party", Party.from_record, FetchError)

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def list_items(
        self,
        search: str | None = None,
        category: str | None = None,
        is_universal: bool | None = None,
    ) -> list[Item]:
        params: dict[str, str] = {}
        if category and category != "all":
            params["category"] = category
        if search:
            params["search"] = search
        if is_universal is not None:
            params["isUniversal"] = "true" if is_universal else "false"
        return self._get_list("/api/items", "items", Item.from_record, params)

    def get_item(self, item_id: str) -> Item:
        data = self._request("GET", f"/api/items/{item_id}", "item", FetchError)
        return self._parse_one(data, "item", Item.from_record, FetchError)

    def create_item(self, item: Item) -> Item:
        data = self._request("POST", "/api/items", "item", UpdateError, payload=item.to_record())
        return self._parse_one(data, "item", Item.from_record, UpdateError)

    def update_item(self, item_id: str, patch: Mapping[str, Any]) -> Item:
        data = self._request(
            "PUT", f"/api/items/{item_id}", "item", UpdateError, payload=dict(patch)
        )
        return self._parse_one(data, "item", Item.from_record, UpdateError)

    def delete_item(self, item_id: str) -> None:
        self._request("DELETE", f"/api/items/{item_id}", "item", UpdateError)

    # ------------------------------------------------------------------
    # Bardana
    # ------------------------------------------------------------------

    def get_bardana(self) -> Item:
        data = self._request("GET", "/api/items/bardana", "bardana", FetchError)
        return self._parse_one(data, "bardana", Item.from_record, FetchError)

    def update_bardana_stock(self, operation: StockOperation, quantity_kg: Decimal) -> Item:
        data = self._request(
            "PUT",
            "/api/items/bardana/stock",
            "bardana",
            UpdateError,
            payload={"operation": StockOperation(operation).value, "quantity": quantity_kg},
        )
        return self._parse_one(data, "bardana", Item.from_record, UpdateError)

    def initialize_bardana(self) -> Item:
        try:
            data = self._request("POST", "/api/items/initialize-bardana", "bardana", UpdateError)
        except UpdateError as exc:
            if exc.status == 409 or _ALREADY_EXISTS in exc.reason.lower():
                logger.info("bardana_already_initialized")
                return self.get_bardana()
            raise
        return self._parse_one(data, "bardana", Item.from_record, UpdateError)
