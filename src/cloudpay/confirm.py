"""
Confirmation orchestrator — the only path that asks the backend to verify a
payment with its gateway.

At most one confirmation is in flight per transaction. A second trigger while
one is outstanding is rejected, not queued. After a hosted checkout the
gateway webhook often lags behind the payer, so a bounded retry loop keeps
asking for a while.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from cloudpay.errors import CloudPayError
from cloudpay.models.payment import CARD
from cloudpay.models.transaction import SUCCESS_TOKENS, TransactionPayload, TransactionStatus
from cloudpay.options import PaymentOptionRegistry
from cloudpay.references import transaction_identifier
from cloudpay.scheduling import cancel_and_wait, cancel_task
from cloudpay.state import TransactionState
from cloudpay.transactions import TransactionsAPI, extract_confirm_status

CARD_GATEWAY = "Paystack"
SAVED_CARD_GATEWAY = "Paystack_Card"

RETRY_ATTEMPTS = 6
RETRY_DELAY_S = 5.0

logger = logging.getLogger(__name__)

_GATEWAY_NAMES = (
    ("flutterwave", "Flutterwave"),
    ("fincra", "Fincra"),
    ("wallet", "Wallet"),
    ("paystack", CARD_GATEWAY),
    ("virtual", "Virtual_Account"),
)


def normalize_gateway(name: Any) -> Optional[str]:
    """Backend gateway key for a free-text gateway name."""
    base = str(name or "")
    if not base:
        return None
    lowered = base.lower()
    for needle, gateway in _GATEWAY_NAMES:
        if needle in lowered:
            return gateway
    return base


class RetryController:
    """Runs an attempt function until it reports done or attempts run out."""

    def __init__(self, max_attempts: int = RETRY_ATTEMPTS, delay: float = RETRY_DELAY_S):
        self.max_attempts = max_attempts
        self.delay = delay
        self.attempts = 0
        self._task: Optional[asyncio.Task[bool]] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self, attempt: Callable[[int], Awaitable[bool]]) -> None:
        await self.cancel()
        self.attempts = 0
        self._task = asyncio.get_running_loop().create_task(self._run(attempt))

    def stop(self) -> None:
        task, self._task = self._task, None
        cancel_task(task)

    async def cancel(self) -> None:
        task, self._task = self._task, None
        await cancel_and_wait(task)

    async def wait(self) -> bool:
        """Wait for the current loop. True if it stopped before running out of attempts."""
        task = self._task
        if task is None:
            return False
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                return False
            raise

    async def _run(self, attempt: Callable[[int], Awaitable[bool]]) -> bool:
        while True:
            self.attempts += 1
            if await attempt(self.attempts):
                return True
            if self.attempts >= self.max_attempts:
                logger.warning("Giving up after %d confirmation attempts", self.attempts)
                return False
            await asyncio.sleep(self.delay)


class ConfirmationOrchestrator:
    def __init__(
        self,
        state: TransactionState,
        registry: PaymentOptionRegistry,
        transactions: TransactionsAPI,
        payload: TransactionPayload,
        is_authenticated: Callable[[], bool],
        caller_reference: Optional[str] = None,
        refresh_saved_cards: Optional[Callable[[], Awaitable[Any]]] = None,
        retry_attempts: int = RETRY_ATTEMPTS,
        retry_delay: float = RETRY_DELAY_S,
    ):
        self._state = state
        self._registry = registry
        self._transactions = transactions
        self._payload = payload
        self._is_authenticated = is_authenticated
        self._caller_reference = caller_reference
        self._refresh_saved_cards = refresh_saved_cards
        self._in_flight = False
        self.retry = RetryController(retry_attempts, retry_delay)

    @property
    def identifier(self) -> Optional[str]:
        return transaction_identifier(self._registry.active_option, self._payload, self._caller_reference)

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def resolve_gateway(self) -> Optional[str]:
        option = self._registry.gateway_option()
        tx = self._payload.transaction
        name = (
            (option.gateway_name if option else "")
            or (tx.payment_gateway if tx else None)
            or self._payload.payment.gateway
        )
        return normalize_gateway(name)

    async def confirm(
        self,
        gateway_override: Optional[str] = None,
        extra_body: Optional[dict[str, Any]] = None,
        include_save_flag: Optional[bool] = None,
    ) -> bool:
        """Ask the backend to confirm the transaction. True if it reports success.

        Never changes the transaction status; callers decide what a result means.
        """
        identifier = self.identifier
        if not identifier:
            logger.warning("Cannot confirm: no transaction reference")
            return False
        if not self._is_authenticated():
            logger.warning("Cannot confirm %s: not authenticated", identifier)
            return False
        if self._state.is_terminal:
            logger.info("Not confirming %s: transaction already %s", identifier, self._state.status.value)
            return False
        if self._in_flight:
            logger.info("Confirmation for %s already in flight", identifier)
            return False

        gateway = gateway_override or self.resolve_gateway()
        if not gateway:
            logger.warning("Cannot confirm %s: no payment gateway", identifier)
            return False

        if include_save_flag is None:
            include_save_flag = gateway == CARD_GATEWAY and self._registry.channel == CARD
        save_card_details = self._registry.save_card if include_save_flag else None

        self._in_flight = True
        try:
            logger.info("Confirming transaction %s via %s", identifier, gateway)
            body = await self._transactions.confirm(identifier, gateway, extra_body, save_card_details)
        except CloudPayError as e:
            logger.error("Failed to confirm transaction %s: %s", identifier, e)
            return False
        finally:
            self._in_flight = False

        status = extract_confirm_status(body)
        if status not in SUCCESS_TOKENS:
            logger.info("Transaction %s not yet successful (status=%r)", identifier, status)
            return False
        logger.info("Transaction %s confirmed (status=%s)", identifier, status)
        return True

    async def confirm_once(
        self,
        gateway_override: Optional[str] = None,
        extra_body: Optional[dict[str, Any]] = None,
        include_save_flag: Optional[bool] = None,
    ) -> bool:
        """Host-triggered confirmation. A running retry loop is cancelled first."""
        if self._in_flight:
            logger.info("Confirmation for %s already in flight", self.identifier)
            return False
        await self.retry.cancel()
        return await self.confirm(gateway_override, extra_body, include_save_flag)

    async def start_retry_loop(self) -> None:
        """Keep confirming a completed card checkout until the backend agrees."""
        if self._in_flight:
            logger.info("Confirmation for %s already in flight, not restarting retries", self.identifier)
            return
        await self.retry.start(self._retry_attempt)

    def stop_retry_loop(self) -> None:
        self.retry.stop()

    async def close(self) -> None:
        await self.retry.cancel()

    async def _retry_attempt(self, attempt: int) -> bool:
        if self._state.is_terminal:
            return True
        logger.info("Scheduled confirm attempt %d for %s", attempt, self.identifier)
        if not await self.confirm(CARD_GATEWAY, include_save_flag=True):
            return False
        if self._refresh_saved_cards:
            await self._refresh_saved_cards()
        self._state.transition(TransactionStatus.COMPLETED, {"channel": CARD, "reference": self.identifier})
        return True
