"""
Transaction state — the single authoritative status of an open payment.

Countdown, poller, confirmation and checkout callbacks all write through
transition(); the host only reads.
"""

import logging
from typing import Any, Callable, Optional

from cloudpay.models.payment import PaymentOption
from cloudpay.models.transaction import (
    AmountBreakdown,
    PricingSummary,
    TransactionInfo,
    TransactionStatus,
)

logger = logging.getLogger(__name__)

Listener = Callable[[TransactionStatus, TransactionStatus], None]

STATUS_MESSAGES = {
    TransactionStatus.COMPLETED: "Payment completed! Your instances are being provisioned and will be available shortly.",
    TransactionStatus.FAILED: "Payment failed. Please try again or contact support.",
    TransactionStatus.EXPIRED: "Payment link has expired. Please create a new order.",
    TransactionStatus.PROCESSING: "Payment is processing. We will update the status once confirmation returns.",
}


class TransactionState:
    def __init__(
        self,
        transaction: Optional[TransactionInfo] = None,
        on_payment_complete: Optional[Callable[[dict[str, Any]], None]] = None,
        pricing_summary: Optional[PricingSummary] = None,
        amount: Optional[float] = None,
        currency: Optional[str] = None,
    ):
        self._transaction = transaction
        self._on_payment_complete = on_payment_complete
        self._pricing_summary = pricing_summary
        self._amount = amount
        self._currency = currency
        self._status = TransactionStatus.PENDING
        self._completion_payload: Optional[dict[str, Any]] = None
        self._listeners: list[Listener] = []
        self._amounts: dict[Any, AmountBreakdown] = {}
        self.confirmed_accounts: list[dict[str, Any]] = []

    @property
    def status(self) -> TransactionStatus:
        return self._status

    @property
    def is_terminal(self) -> bool:
        return self._status.is_terminal

    @property
    def completion_payload(self) -> Optional[dict[str, Any]]:
        return self._completion_payload

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Observe status changes. Returns a cleanup function."""
        self._listeners.append(listener)

        def remove() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass
        return remove

    def transition(self, new_status: TransactionStatus, payload: Optional[dict[str, Any]] = None) -> bool:
        """Move to new_status. Returns False when already terminal or unchanged."""
        if self._status.is_terminal or new_status == self._status:
            return False
        old = self._status
        self._status = new_status
        logger.info("Transaction status %s -> %s", old.value, new_status.value)

        if new_status == TransactionStatus.COMPLETED:
            self._completion_payload = payload or {}
            if self._on_payment_complete:
                self._on_payment_complete(self._completion_payload)

        for listener in list(self._listeners):
            listener(old, new_status)
        return True

    def amounts_for(self, option: Optional[PaymentOption]) -> AmountBreakdown:
        """Amount breakdown for an option, computed once per option."""
        key = ("option", option.key) if option else None
        if key not in self._amounts:
            self._amounts[key] = AmountBreakdown.resolve(
                self._transaction, option, self._pricing_summary, self._amount, self._currency,
            )
        return self._amounts[key]

    def status_message(self, channel: Optional[str] = None) -> str:
        if self._status in STATUS_MESSAGES:
            return STATUS_MESSAGES[self._status]
        if channel == "card":
            return "Pay with card to complete your order. Status updates after confirmation."
        return "Complete your payment to proceed with instance provisioning."
