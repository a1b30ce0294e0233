"""Shared fixtures: an in-memory console backend behind httpx.MockTransport."""

import asyncio
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import httpx
import pytest
import pytest_asyncio

from cloudpay.auth import AuthContext
from cloudpay.engine import PaymentEngine
from cloudpay.transport.http import HttpClient

BASE_URL = "https://console.test/api/v1"
API_PREFIX = "/api/v1"

PAYSTACK_CARD = {
    "id": 1,
    "name": "Paystack",
    "payment_type": "Card",
    "transaction_reference": "PSK-REF-1",
    "public_key": "pk_test_option",
    "charge_breakdown": {"base_amount": 1000, "tax": 75, "total_fees": 25, "grand_total": 1100},
    "currency": "NGN",
}

BANK_TRANSFER = {
    "id": 2,
    "name": "Fincra",
    "payment_type": "Bank Transfer",
    "transaction_reference": "FCR-REF-2",
    "details": {"account_name": "Cloud Console Ltd", "account_number": "0123456789", "bank_name": "Wema"},
    "charge_breakdown": {"base_amount": 1000, "tax": 75, "total_fees": 10, "grand_total": 1085},
}

SAVED_CARDS = [
    {"identifier": "AUTH_aaa", "card_type": "visa", "last4": "4081", "exp_month": "12", "exp_year": "2030", "bank": "Test Bank"},
    {"id": 7, "card_type": "mastercard", "last4": "5555", "exp_month": "01", "exp_year": "2029"},
]


def make_payload(
    options: Optional[list[dict[str, Any]]] = None,
    saved_cards: Optional[list[dict[str, Any]]] = None,
    expires_in: Optional[float] = None,
    transaction: Optional[dict[str, Any]] = None,
    **payment: Any,
) -> dict[str, Any]:
    block: dict[str, Any] = {
        "payment_gateway_options": options or [],
        "saved_cards": saved_cards or [],
        **payment,
    }
    if expires_in is not None:
        block["expires_at"] = (datetime.now(timezone.utc) + timedelta(seconds=expires_in)).isoformat()
    if transaction is None:
        transaction = {
            "id": 42,
            "identifier": "TXN-42",
            "amount": 1500,
            "currency": "NGN",
            "user": {"email": "payer@example.com"},
        }
    return {"data": {"transaction": transaction, "payment": block}}


class FakeBackend:
    """Console API double. Records every request it sees."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.poll_status = "pending"
        self.poll_accounts: Optional[list[dict[str, Any]]] = None
        self.poll_error = False
        self.confirm_statuses: list[str] = []
        self.confirm_status = "pending"
        self.confirm_http_status = 200
        self.confirm_shape = "data"
        self.cards: list[dict[str, Any]] = [dict(c) for c in SAVED_CARDS]
        self.cards_success = True
        self.delete_http_status = 200
        self.transaction_payload: dict[str, Any] = make_payload(options=[PAYSTACK_CARD])
        self.confirm_gate: Optional[asyncio.Event] = None
        self.status_gate: Optional[asyncio.Event] = None
        self.confirm_times: list[float] = []

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls(self, method: str, contains: str = "") -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and contains in r.url.path]

    def confirm_calls(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "PUT"]

    def confirm_bodies(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.confirm_calls()]

    def status_calls(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "GET" and r.url.path.endswith("/status")]

    def _confirm_body(self) -> dict[str, Any]:
        status = self.confirm_statuses.pop(0) if self.confirm_statuses else self.confirm_status
        if self.confirm_shape == "flat":
            return {"status": status}
        if self.confirm_shape == "nested":
            return {"data": {"transaction": {"status": status}}}
        return {"data": {"status": status}}

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path[len(API_PREFIX):]

        if request.method == "GET" and path.endswith("/status"):
            if self.status_gate is not None:
                await self.status_gate.wait()
            if self.poll_error:
                raise httpx.ConnectError("backend unreachable", request=request)
            data: dict[str, Any] = {"status": self.poll_status}
            if self.poll_accounts is not None:
                data["accounts"] = self.poll_accounts
            return httpx.Response(200, json={"success": True, "data": data})

        if request.method == "PUT" and path.startswith("/transactions/"):
            self.confirm_times.append(asyncio.get_running_loop().time())
            if self.confirm_gate is not None:
                await self.confirm_gate.wait()
            if self.confirm_http_status >= 400:
                return httpx.Response(self.confirm_http_status, json={"message": "gateway error"})
            return httpx.Response(200, json=self._confirm_body())

        if request.method == "GET" and path.startswith("/transactions/"):
            return httpx.Response(200, json=self.transaction_payload)

        if path.endswith("/cards"):
            if not self.cards_success:
                return httpx.Response(200, json={"success": False, "message": "nope"})
            return httpx.Response(200, json={"success": True, "cards": self.cards})

        if request.method == "DELETE" and "/cards/" in path:
            if self.delete_http_status >= 400:
                return httpx.Response(self.delete_http_status, json={"success": False})
            card_id = path.rsplit("/", 1)[-1]
            self.cards = [c for c in self.cards if str(c.get("identifier") or c.get("id")) != card_id]
            return httpx.Response(200, json={"success": True})

        return httpx.Response(404, json={"message": f"no route for {request.method} {path}"})


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest_asyncio.fixture
async def http(backend):
    client = HttpClient(AuthContext(token="tok_123", base_url=BASE_URL, scope="admin"), transport=backend.transport())
    yield client
    await client.close()


@pytest_asyncio.fixture
async def make_engine(http):
    engines: list[PaymentEngine] = []

    def _make(payload: Any, **kwargs: Any) -> PaymentEngine:
        kwargs.setdefault("poll_interval", 0.05)
        kwargs.setdefault("tick_interval", 0.01)
        kwargs.setdefault("retry_delay", 0.01)
        engine = PaymentEngine(http, payload, **kwargs)
        engines.append(engine)
        return engine

    yield _make
    for engine in engines:
        await engine.close()
