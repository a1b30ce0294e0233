"""
Saved card manager — lists, selects and removes stored cards, and pays with
the selected one instead of opening a fresh checkout.
"""

import logging
from typing import Callable, Optional

from cloudpay.cards import CardsAPI
from cloudpay.confirm import SAVED_CARD_GATEWAY, ConfirmationOrchestrator
from cloudpay.errors import CloudPayError
from cloudpay.models.payment import SAVED_CARD, SavedCard
from cloudpay.models.transaction import TransactionStatus
from cloudpay.state import TransactionState

logger = logging.getLogger(__name__)


class SavedCardManager:
    def __init__(
        self,
        state: TransactionState,
        cards: CardsAPI,
        orchestrator: ConfirmationOrchestrator,
        initial: Optional[list[SavedCard]] = None,
        is_authenticated: Callable[[], bool] = lambda: True,
        on_change: Optional[Callable[[], None]] = None,
    ):
        self._state = state
        self._cards = cards
        self._orchestrator = orchestrator
        self._is_authenticated = is_authenticated
        self._on_change = on_change
        self._items: list[SavedCard] = list(initial or [])
        self._selected: Optional[str] = None
        self._repair_selection()

    @property
    def items(self) -> list[SavedCard]:
        return list(self._items)

    @property
    def selected(self) -> Optional[str]:
        return self._selected

    def identifiers(self) -> list[str]:
        return [card.resolve_identifier(str(index)) for index, card in enumerate(self._items)]

    def get(self, identifier: str) -> Optional[SavedCard]:
        for key, card in zip(self.identifiers(), self._items):
            if key == identifier:
                return card
        return None

    async def refresh(self) -> list[SavedCard]:
        """Reload saved cards from the backend. Keeps the current list on failure."""
        if not self._is_authenticated():
            return self.items
        try:
            cards = await self._cards.list()
        except CloudPayError as e:
            logger.error("Unable to fetch saved cards: %s", e)
            return self.items
        self._replace(cards)
        return self.items

    def select(self, identifier: str) -> bool:
        if identifier not in self.identifiers():
            return False
        self._selected = identifier
        return True

    async def remove(self, identifier: str) -> bool:
        if not identifier or not self._is_authenticated():
            return False
        try:
            await self._cards.delete(identifier)
        except CloudPayError as e:
            logger.error("Unable to remove card %s: %s", identifier, e)
            return False
        remaining = [card for key, card in zip(self.identifiers(), self._items) if key != identifier]
        if self._selected == identifier:
            self._selected = None
        self._replace(remaining, repair=False)
        return True

    async def pay_with_selected(self) -> bool:
        """Charge the selected card. The card is already stored, so no save flag."""
        if not self._selected or self._orchestrator.in_flight:
            return False
        logger.info("Paying %s with saved card %s", self._orchestrator.identifier, self._selected)
        confirmed = await self._orchestrator.confirm_once(
            SAVED_CARD_GATEWAY,
            {"card_identifier": self._selected},
            include_save_flag=False,
        )
        if confirmed:
            self._state.transition(TransactionStatus.COMPLETED, {
                "status": "successful",
                "reference": self._orchestrator.identifier,
                "channel": SAVED_CARD,
            })
        else:
            self._state.transition(TransactionStatus.PENDING)
        return confirmed

    def _replace(self, cards: list[SavedCard], repair: bool = True) -> None:
        self._items = list(cards)
        if repair:
            self._repair_selection()
        elif self._selected not in self.identifiers():
            self._selected = None
        if self._on_change:
            self._on_change()

    def _repair_selection(self) -> None:
        ids = self.identifiers()
        if self._selected in ids:
            return
        self._selected = ids[0] if ids else None
