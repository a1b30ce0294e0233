"""
Saved cards REST API.
"""

from __future__ import annotations

from typing import Any

from cloudpay.errors import CloudPayError
from cloudpay.models.payment import SavedCard
from cloudpay.transport.http import HttpClient


class CardsAPI:
    def __init__(self, http: HttpClient):
        self._http = http

    @property
    def _path(self) -> str:
        return self._http.auth.cards_path

    async def list(self) -> list[SavedCard]:
        """List saved cards for the current account."""
        body = await self._http.get(self._path)
        if not isinstance(body, dict) or body.get("success") is False:
            raise CloudPayError("cards_error", "Failed to fetch saved cards", {"body": body})
        cards = body.get("cards")
        if not isinstance(cards, list):
            raise CloudPayError("cards_error", "Saved cards response has no card list", {"body": body})
        return [SavedCard.model_validate(card) for card in cards]

    async def delete(self, identifier: str) -> Any:
        """Remove a saved card."""
        body = await self._http.delete(f"{self._path}/{identifier}")
        if isinstance(body, dict) and body.get("success") is False:
            raise CloudPayError("cards_error", f"Failed to remove card {identifier}", {"body": body})
        return body
