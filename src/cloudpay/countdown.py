"""
Expiry countdown — ticks until the server-issued expiry and then marks the
transaction expired.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from cloudpay.models.transaction import TimeRemaining, TransactionStatus
from cloudpay.scheduling import cancel_and_wait, cancel_task
from cloudpay.state import TransactionState

TICK_INTERVAL_S = 1.0

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExpiryCountdown:
    def __init__(
        self,
        state: TransactionState,
        expires_at: datetime,
        tick_interval: float = TICK_INTERVAL_S,
        clock: Callable[[], datetime] = utcnow,
    ):
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        self._state = state
        self._expires_at = expires_at
        self._tick_interval = tick_interval
        self._clock = clock
        self._task: Optional[asyncio.Task[None]] = None
        self.time_remaining: Optional[TimeRemaining] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running or self._state.is_terminal:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        task, self._task = self._task, None
        cancel_task(task)

    async def close(self) -> None:
        task, self._task = self._task, None
        await cancel_and_wait(task)

    def tick(self) -> bool:
        """Recompute the remaining time. Returns False once the countdown is over."""
        if self._state.is_terminal:
            self.time_remaining = None
            return False
        remaining = (self._expires_at - self._clock()).total_seconds()
        if remaining > 0:
            self.time_remaining = TimeRemaining.from_seconds(remaining)
            return True
        self.time_remaining = None
        logger.info("Payment window expired at %s", self._expires_at.isoformat())
        self._state.transition(TransactionStatus.EXPIRED)
        return False

    async def _run(self) -> None:
        while self.tick():
            await asyncio.sleep(self._tick_interval)
