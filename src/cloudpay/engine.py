"""
Payment engine — one open transaction, from channel selection to a final
status.

The engine owns the transaction state and runs three background tasks while
it is active: the expiry countdown, the status poller and (after a hosted
checkout) the confirmation retry loop. Any terminal status stops all three.
The host reads properties and calls operations; it never mutates state.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Optional, Union

from cloudpay.cards import CardsAPI
from cloudpay.checkout import CheckoutAdapter, CheckoutParams
from cloudpay.confirm import RETRY_ATTEMPTS, RETRY_DELAY_S, ConfirmationOrchestrator
from cloudpay.countdown import TICK_INTERVAL_S, ExpiryCountdown, utcnow
from cloudpay.models.payment import BANK_TRANSFER, PaymentOption
from cloudpay.models.transaction import (
    AmountBreakdown,
    PricingSummary,
    TimeRemaining,
    TransactionPayload,
    TransactionStatus,
)
from cloudpay.options import PaymentOptionRegistry
from cloudpay.poller import POLL_INTERVAL_S, StatusPoller
from cloudpay.references import display_reference, status_lookup_identifier
from cloudpay.saved_cards import SavedCardManager
from cloudpay.state import TransactionState
from cloudpay.transactions import TransactionsAPI
from cloudpay.transport.http import HttpClient

logger = logging.getLogger(__name__)


class PaymentEngine:
    def __init__(
        self,
        http: HttpClient,
        payload: Union[TransactionPayload, dict[str, Any], None],
        *,
        on_payment_complete: Optional[Callable[[dict[str, Any]], None]] = None,
        on_option_change: Optional[Callable[[Optional[PaymentOption]], None]] = None,
        transaction_reference: Optional[str] = None,
        payment_options: Optional[list[Union[PaymentOption, dict[str, Any]]]] = None,
        amount: Optional[float] = None,
        currency: Optional[str] = None,
        email: Optional[str] = None,
        public_key: Optional[str] = None,
        pricing_summary: Optional[PricingSummary] = None,
        poll_interval: float = POLL_INTERVAL_S,
        tick_interval: float = TICK_INTERVAL_S,
        retry_attempts: int = RETRY_ATTEMPTS,
        retry_delay: float = RETRY_DELAY_S,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._http = http
        if not isinstance(payload, TransactionPayload):
            payload = TransactionPayload.from_response(payload)
        self.payload = payload
        self._transaction_reference = transaction_reference
        self._active = False

        transactions = TransactionsAPI(http)
        if payment_options is not None:
            options = [PaymentOption.model_validate(o) if isinstance(o, dict) else o for o in payment_options]
        else:
            options = payload.payment.payment_gateway_options

        self.state = TransactionState(payload.transaction, on_payment_complete, pricing_summary, amount, currency)
        self.options = PaymentOptionRegistry(
            options,
            has_saved_cards=lambda: bool(self.saved_cards.items),
            on_option_change=on_option_change,
        )
        self.confirmation = ConfirmationOrchestrator(
            self.state,
            self.options,
            transactions,
            payload,
            self._is_authenticated,
            caller_reference=transaction_reference,
            refresh_saved_cards=self._refresh_saved_cards,
            retry_attempts=retry_attempts,
            retry_delay=retry_delay,
        )
        self.saved_cards = SavedCardManager(
            self.state,
            CardsAPI(http),
            self.confirmation,
            initial=payload.payment.saved_cards,
            is_authenticated=self._is_authenticated,
            on_change=self._on_saved_cards_change,
        )
        self.checkout = CheckoutAdapter(
            self.state,
            self.options,
            self.confirmation,
            payload,
            amounts=lambda: self.amounts,
            refresh_saved_cards=self._refresh_saved_cards,
            context_email=http.auth.email,
            email=email,
            public_key=public_key,
        )
        self.poller = StatusPoller(
            self.state,
            transactions,
            self._status_identifier,
            self._is_authenticated,
            interval=poll_interval,
        )
        expires_at = payload.payment.expires_at
        self.countdown = ExpiryCountdown(self.state, expires_at, tick_interval, clock) if expires_at else None
        self.state.add_listener(self._on_status_change)

    @property
    def active(self) -> bool:
        return self._active

    @property
    def status(self) -> TransactionStatus:
        return self.state.status

    @property
    def channel(self) -> Optional[str]:
        return self.options.channel

    @property
    def active_option(self) -> Optional[PaymentOption]:
        return self.options.active_option

    def available_channels(self) -> list[str]:
        return self.options.available_channels()

    @property
    def amounts(self) -> AmountBreakdown:
        return self.state.amounts_for(self.options.amount_option())

    @property
    def time_remaining(self) -> Optional[TimeRemaining]:
        return self.countdown.time_remaining if self.countdown else None

    @property
    def confirmed_accounts(self) -> list[dict[str, Any]]:
        return list(self.state.confirmed_accounts)

    @property
    def checkout_params(self) -> CheckoutParams:
        return self.checkout.params

    @property
    def identifier(self) -> Optional[str]:
        return self.confirmation.identifier

    @property
    def display_reference(self) -> Optional[str]:
        return display_reference(self.payload, self.identifier, self._transaction_reference)

    @property
    def status_message(self) -> str:
        return self.state.status_message(self.channel)

    def completion_target(self) -> str:
        """Where the host should navigate once the payment has completed."""
        paths = self._http.auth.app_paths
        if not (self.payload.is_storage_order or self.state.confirmed_accounts):
            return paths["instances"]
        account_id = self._storage_account_id()
        if account_id is not None:
            return f"{paths['storage']}/{account_id}"
        return paths["storage"]

    def start(self) -> None:
        """Open the engine. Must be called from a running event loop."""
        if self._active:
            return
        self._active = True
        channels = self.options.available_channels()
        if channels:
            self.options.select_channel(channels[0])
        if self.countdown:
            self.countdown.start()
        self._maybe_start_poller()

    async def close(self) -> None:
        """Stop every timer. The state stays readable."""
        self._active = False
        if self.countdown:
            await self.countdown.close()
        await self.poller.close()
        await self.confirmation.close()

    def select_channel(self, channel: str) -> bool:
        return self.options.select_channel(channel)

    def select_option(self, option_id: str) -> bool:
        return self.options.select_option(option_id)

    def set_save_card(self, enabled: bool) -> bool:
        return self.options.set_save_card(enabled)

    async def confirm_bank_transfer(self) -> bool:
        """The payer says the transfer was made."""
        option = self.options.active_option
        if self.channel != BANK_TRANSFER or option is None:
            return False
        logger.info("Bank transfer confirmation for %s", self.identifier)
        if not await self.confirmation.confirm_once():
            return False
        self.state.transition(TransactionStatus.COMPLETED, {
            "status": "successful",
            "reference": option.transaction_reference or self.identifier,
            "channel": BANK_TRANSFER,
        })
        return True

    async def pay_with_saved_card(self) -> bool:
        return await self.saved_cards.pay_with_selected()

    async def check_status_now(self) -> Optional[TransactionStatus]:
        return await self.poller.check_now()

    async def start_retry_loop(self) -> None:
        await self.confirmation.start_retry_loop()

    async def on_checkout_success(self, response: Optional[dict[str, Any]] = None) -> bool:
        return await self.checkout.on_success(response)

    async def on_checkout_close(self) -> bool:
        return await self.checkout.on_close()

    async def refresh_saved_cards(self) -> None:
        await self._refresh_saved_cards()

    async def remove_saved_card(self, identifier: str) -> bool:
        return await self.saved_cards.remove(identifier)

    def _is_authenticated(self) -> bool:
        return self._http.auth.is_authenticated

    def _status_identifier(self) -> Optional[str]:
        return status_lookup_identifier(self.payload, self.identifier, self._transaction_reference)

    async def _refresh_saved_cards(self) -> None:
        await self.saved_cards.refresh()

    def _on_saved_cards_change(self) -> None:
        if self._active:
            self.options.sync()

    def _maybe_start_poller(self) -> None:
        # Nothing can be paid without a channel, so there is nothing to watch for.
        if self._active and self.options.available_channels():
            self.poller.start()

    def _on_status_change(self, old: TransactionStatus, new: TransactionStatus) -> None:
        if new.is_terminal:
            if self.countdown:
                self.countdown.stop()
            self.poller.stop()
            self.confirmation.stop_retry_loop()
        elif new == TransactionStatus.PENDING:
            self._maybe_start_poller()
        else:
            self.poller.stop()

    def _storage_account_id(self) -> Any:
        candidates: list[Any] = []
        if self.state.confirmed_accounts:
            candidates.append(self.state.confirmed_accounts[0].get("id"))
        if self.payload.accounts:
            candidates.append(self.payload.accounts[0].get("id"))
        if self.payload.order_items:
            candidates.append((self.payload.order_items[0].get("account") or {}).get("id"))
        profiles = self.payload.storage_profiles
        if profiles:
            candidates.append((profiles[0].get("account") or {}).get("id"))
            candidates.append(profiles[0].get("account_id"))
        return next((c for c in candidates if c), None)
