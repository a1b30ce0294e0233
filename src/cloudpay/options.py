"""
Payment option registry — classifies gateway offers into channels and tracks
which channel and option the payer has selected.

Channels are offered in a fixed order: card, bank transfer, saved card.
"""

import logging
from typing import Callable, Optional

from cloudpay.models.payment import BANK_TRANSFER, CARD, SAVED_CARD, PaymentOption

logger = logging.getLogger(__name__)


class PaymentOptionRegistry:
    def __init__(
        self,
        options: list[PaymentOption],
        has_saved_cards: Callable[[], bool] = lambda: False,
        on_option_change: Optional[Callable[[Optional[PaymentOption]], None]] = None,
    ):
        self._options = list(options)
        self._has_saved_cards = has_saved_cards
        self._on_option_change = on_option_change
        self._channel: Optional[str] = None
        self._active: Optional[PaymentOption] = None
        self._save_card = False

    @property
    def options(self) -> list[PaymentOption]:
        return list(self._options)

    @property
    def card_options(self) -> list[PaymentOption]:
        return [o for o in self._options if o.channel_type == CARD]

    @property
    def bank_transfer_options(self) -> list[PaymentOption]:
        return [o for o in self._options if o.channel_type == BANK_TRANSFER]

    @property
    def channel(self) -> Optional[str]:
        return self._channel

    @property
    def active_option(self) -> Optional[PaymentOption]:
        return self._active

    @property
    def save_card(self) -> bool:
        return self._save_card

    @property
    def is_paystack_card(self) -> bool:
        return self._channel == CARD and self._active is not None and self._active.is_paystack_card

    def options_for(self, channel: Optional[str]) -> list[PaymentOption]:
        if channel == CARD:
            return self.card_options
        if channel == BANK_TRANSFER:
            return self.bank_transfer_options
        return []

    def available_channels(self) -> list[str]:
        channels = []
        if self.card_options:
            channels.append(CARD)
        if self.bank_transfer_options:
            channels.append(BANK_TRANSFER)
        if self._has_saved_cards():
            channels.append(SAVED_CARD)
        return channels

    def amount_option(self) -> Optional[PaymentOption]:
        """Option whose figures drive the amount breakdown."""
        for candidate in (self._active, *self.card_options[:1], *self.bank_transfer_options[:1], *self._options[:1]):
            if candidate is not None:
                return candidate
        return None

    def gateway_option(self) -> Optional[PaymentOption]:
        """Option whose name decides the gateway when none is given explicitly."""
        if self._active is not None:
            return self._active
        return self._options[0] if self._options else None

    def select_channel(self, channel: str) -> bool:
        if channel not in self.available_channels():
            logger.warning("Payment channel %r is not available", channel)
            return False
        self._channel = channel
        self._sync_option()
        return True

    def select_option(self, option_id: str) -> bool:
        if self._channel not in (CARD, BANK_TRANSFER):
            return False
        key = str(option_id)
        for option in self.options_for(self._channel):
            if option.key == key:
                self._set_option(option)
                return True
        return False

    def set_save_card(self, enabled: bool) -> bool:
        """Only a Paystack card checkout can store the card afterwards."""
        if enabled and not self.is_paystack_card:
            return False
        self._save_card = enabled
        return True

    def sync(self) -> None:
        """Re-validate the selection after the saved card collection changed."""
        channels = self.available_channels()
        if self._channel not in channels:
            self._channel = channels[0] if channels else None
        self._sync_option()

    def _sync_option(self) -> None:
        candidates = self.options_for(self._channel)
        current = self._active.key if self._active else None
        next_option = next((o for o in candidates if o.key == current), None)
        if next_option is None and candidates:
            next_option = candidates[0]
        self._set_option(next_option)

    def _set_option(self, option: Optional[PaymentOption]) -> None:
        changed = option is not self._active
        self._active = option
        if not self.is_paystack_card:
            self._save_card = False
        if changed and self._on_option_change:
            self._on_option_change(option)
