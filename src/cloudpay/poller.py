"""
Status poller — periodically asks the backend whether a pending transaction
was settled out of band (gateway webhook, bank transfer reconciliation).
"""

import asyncio
import logging
from typing import Any, Callable, Optional

from cloudpay.errors import CloudPayError
from cloudpay.models.transaction import TransactionStatus, normalize_status
from cloudpay.scheduling import cancel_and_wait, cancel_task
from cloudpay.state import TransactionState
from cloudpay.transactions import TransactionsAPI

POLL_INTERVAL_S = 10.0

logger = logging.getLogger(__name__)


class StatusPoller:
    def __init__(
        self,
        state: TransactionState,
        transactions: TransactionsAPI,
        identifier: Callable[[], Optional[str]],
        is_authenticated: Callable[[], bool],
        interval: float = POLL_INTERVAL_S,
    ):
        self._state = state
        self._transactions = transactions
        self._identifier = identifier
        self._is_authenticated = is_authenticated
        self._interval = interval
        self._task: Optional[asyncio.Task[None]] = None
        self._in_flight = False

    @property
    def identifier(self) -> Optional[str]:
        return self._identifier()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def start(self) -> None:
        if self.running or self._state.status != TransactionStatus.PENDING:
            return
        if not self.identifier or not self._is_authenticated():
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        task, self._task = self._task, None
        cancel_task(task)

    async def close(self) -> None:
        task, self._task = self._task, None
        await cancel_and_wait(task)

    async def check_now(self) -> Optional[TransactionStatus]:
        """Poll once. Skipped while another poll is outstanding.

        Returns the status the poll moved the transaction to, if any.
        """
        identifier = self.identifier
        if self._in_flight or not identifier or not self._is_authenticated():
            return None
        if self._state.is_terminal:
            return None

        self._in_flight = True
        try:
            body = await self._transactions.status(identifier)
        except CloudPayError as e:
            logger.error("Failed to check transaction status for %s: %s", identifier, e)
            return None
        finally:
            self._in_flight = False
        return self._apply(body)

    def _apply(self, body: Any) -> Optional[TransactionStatus]:
        if self._state.is_terminal or not isinstance(body, dict):
            return None
        data = body.get("data")
        if not body.get("success") or not isinstance(data, dict):
            return None

        status = normalize_status(data.get("status"))
        if status == TransactionStatus.COMPLETED:
            accounts = data.get("accounts")
            if isinstance(accounts, list):
                self._state.confirmed_accounts = accounts
            self._state.transition(TransactionStatus.COMPLETED, data)
        elif status == TransactionStatus.FAILED:
            self._state.transition(TransactionStatus.FAILED)
        return status

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            if self._state.status != TransactionStatus.PENDING:
                return
            await self.check_now()
