"""
Transactions REST API — status lookup and confirmation.
"""

from __future__ import annotations

from typing import Any, Optional

from cloudpay.errors import TransactionError
from cloudpay.transport.http import HttpClient


def extract_confirm_status(body: Any) -> str:
    """Status token of a confirmation response, lowercased.

    The backend answers in one of three shapes depending on gateway:
    {data: {status}}, {status}, or {data: {transaction: {status}}}.
    """
    if not isinstance(body, dict):
        return ""
    data = body.get("data") if isinstance(body.get("data"), dict) else {}
    transaction = data.get("transaction") if isinstance(data.get("transaction"), dict) else {}
    status = data.get("status") or body.get("status") or transaction.get("status") or ""
    return str(status).lower()


class TransactionsAPI:
    def __init__(self, http: HttpClient):
        self._http = http

    async def get(self, identifier: str) -> dict[str, Any]:
        """Fetch the full transaction payload."""
        return await self._http.get(f"/transactions/{identifier}")

    async def status(self, identifier: str) -> dict[str, Any]:
        """Current backend status — {success, data: {status, accounts?}}."""
        return await self._http.get(f"/transactions/{identifier}/status")

    async def confirm(
        self,
        identifier: str,
        payment_gateway: str,
        extra_body: Optional[dict[str, Any]] = None,
        save_card_details: Optional[bool] = None,
    ) -> dict[str, Any]:
        """Ask the backend to verify payment with the gateway."""
        if not payment_gateway:
            raise TransactionError("payment_gateway is required", code="missing_gateway")
        body: dict[str, Any] = {"payment_gateway": payment_gateway, **(extra_body or {})}
        if save_card_details is not None:
            body["save_card_details"] = save_card_details
        return await self._http.put(f"/transactions/{identifier}", body)
