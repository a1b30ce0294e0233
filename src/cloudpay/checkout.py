"""
External checkout adapter — the boundary to the hosted card widget.

The widget is opaque: we hand it CheckoutParams and it calls back with
on_success(response) or on_close(). Gateways often report completion
asynchronously, so a close without a success signal is still treated as a
possible payment and confirmed once.
"""

import logging
import os
from typing import Any, Awaitable, Callable, Optional

from pydantic import BaseModel

from cloudpay.confirm import CARD_GATEWAY, ConfirmationOrchestrator
from cloudpay.models.payment import CARD
from cloudpay.models.transaction import AmountBreakdown, TransactionPayload, TransactionStatus
from cloudpay.options import PaymentOptionRegistry
from cloudpay.state import TransactionState

PUBLIC_KEY_ENV = "CLOUDPAY_PAYSTACK_KEY"

logger = logging.getLogger(__name__)


class CheckoutParams(BaseModel):
    email: str = ""
    amount_minor_units: int = 0
    reference: Optional[str] = None
    public_key: str = ""

    @property
    def ready(self) -> bool:
        return bool(self.public_key and self.email and self.reference)


class CheckoutAdapter:
    def __init__(
        self,
        state: TransactionState,
        registry: PaymentOptionRegistry,
        orchestrator: ConfirmationOrchestrator,
        payload: TransactionPayload,
        amounts: Callable[[], AmountBreakdown],
        refresh_saved_cards: Callable[[], Awaitable[Any]],
        context_email: Optional[str] = None,
        email: Optional[str] = None,
        public_key: Optional[str] = None,
    ):
        self._state = state
        self._registry = registry
        self._orchestrator = orchestrator
        self._payload = payload
        self._amounts = amounts
        self._refresh_saved_cards = refresh_saved_cards
        self._context_email = context_email
        self._email = email
        self._public_key = public_key

    def resolve_email(self) -> str:
        tx = self._payload.transaction
        customer = self._payload.payment.customer_context
        return (
            self._email
            or (tx.user.email if tx and tx.user else None)
            or (customer.email if customer else None)
            or self._context_email
            or ""
        )

    def resolve_public_key(self) -> str:
        option = self._registry.active_option
        return (
            self._public_key
            or (option.public_key if option else None)
            or self._payload.payment.public_key
            or os.environ.get(PUBLIC_KEY_ENV)
            or ""
        )

    @property
    def params(self) -> CheckoutParams:
        return CheckoutParams(
            email=self.resolve_email(),
            amount_minor_units=self._amounts().minor_units,
            reference=self._orchestrator.identifier,
            public_key=self.resolve_public_key(),
        )

    @property
    def ready(self) -> bool:
        return self.params.ready

    @property
    def offered(self) -> bool:
        """Whether the host should show the checkout widget at all."""
        return (
            self._registry.channel == CARD
            and self._registry.active_option is not None
            and self._state.status != TransactionStatus.COMPLETED
            and self.ready
        )

    async def on_success(self, response: Optional[dict[str, Any]] = None) -> bool:
        """Widget reported a successful charge."""
        logger.info("Checkout success callback: %s", response)
        response = response or {}
        return await self._confirm_once({
            **response,
            "status": "successful",
            "channel": CARD,
            "reference": response.get("reference") or self._orchestrator.identifier,
        })

    async def on_close(self) -> bool:
        """Widget dismissed without an explicit success signal."""
        logger.info("Checkout closed")
        return await self._confirm_once({
            "channel": CARD,
            "reference": self._orchestrator.identifier,
            "status": "successful",
        })

    async def on_redirect_return(self) -> None:
        """Payer came back from a redirect checkout; keep confirming for a while."""
        if self._state.is_terminal:
            return
        logger.info("Returned from hosted checkout, starting confirmation retries")
        await self._orchestrator.start_retry_loop()

    async def _confirm_once(self, completion: dict[str, Any]) -> bool:
        if self._state.is_terminal or self._orchestrator.in_flight:
            return False
        self._state.transition(TransactionStatus.PROCESSING)
        confirmed = await self._orchestrator.confirm_once(CARD_GATEWAY, include_save_flag=True)
        if not confirmed:
            self._state.transition(TransactionStatus.PENDING)
            return False
        await self._refresh_saved_cards()
        self._state.transition(TransactionStatus.COMPLETED, completion)
        return True
