"""
AsyncCloudPay / CloudPay — SDK entry points.
"""

import asyncio
from typing import Any, Optional

import httpx

from cloudpay.auth import AuthContext, Scope
from cloudpay.cards import CardsAPI
from cloudpay.engine import PaymentEngine
from cloudpay.models.payment import SavedCard
from cloudpay.transactions import TransactionsAPI
from cloudpay.transport.http import DEFAULT_BASE_URL, HttpClient


class AsyncCloudPay:
    """Async console payment client (primary)."""

    def __init__(
        self,
        access_token: Optional[str] = None,
        base_url: str = DEFAULT_BASE_URL,
        scope: Scope = "client",
        tenant: Optional[str] = None,
        email: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        auth = AuthContext(token=access_token, base_url=base_url, scope=scope, tenant_header=tenant, email=email)
        self.http = HttpClient(auth, transport=transport)
        self.transactions = TransactionsAPI(self.http)
        self.cards = CardsAPI(self.http)

    @property
    def auth(self) -> AuthContext:
        return self.http.auth

    def open_payment(self, transaction_data: Any, **kwargs: Any) -> PaymentEngine:
        """Create a payment engine for a transaction payload. Call start() on it."""
        return PaymentEngine(self.http, transaction_data, **kwargs)

    async def open_transaction(self, identifier: str, **kwargs: Any) -> PaymentEngine:
        """Fetch a transaction by id and open a started payment engine for it."""
        body = await self.transactions.get(identifier)
        engine = self.open_payment(body, **kwargs)
        engine.start()
        return engine

    async def close(self) -> None:
        await self.http.close()


class CloudPay:
    """Sync wrapper around AsyncCloudPay for one-shot REST calls.

    The payment engine needs a running event loop and is only available on
    AsyncCloudPay.
    """

    def __init__(self, **kwargs: Any):
        self._async = AsyncCloudPay(**kwargs)
        self._loop = asyncio.new_event_loop()

    def _run(self, coro: Any) -> Any:
        return self._loop.run_until_complete(coro)

    @property
    def auth(self) -> AuthContext:
        return self._async.auth

    def transaction_status(self, identifier: str) -> dict[str, Any]:
        return self._run(self._async.transactions.status(identifier))

    def confirm_transaction(
        self,
        identifier: str,
        payment_gateway: str,
        extra_body: Optional[dict[str, Any]] = None,
        save_card_details: Optional[bool] = None,
    ) -> dict[str, Any]:
        return self._run(self._async.transactions.confirm(identifier, payment_gateway, extra_body, save_card_details))

    def list_cards(self) -> list[SavedCard]:
        return self._run(self._async.cards.list())

    def remove_card(self, identifier: str) -> Any:
        return self._run(self._async.cards.delete(identifier))

    def close(self) -> None:
        self._run(self._async.close())
        self._loop.close()
