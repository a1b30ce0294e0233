"""Status poller against the fake backend."""

import asyncio

import pytest

from cloudpay.models.transaction import TransactionStatus
from cloudpay.poller import StatusPoller
from cloudpay.state import TransactionState
from cloudpay.transactions import TransactionsAPI


def make_poller(http, state=None, identifier="42", authenticated=True, interval=0.02):
    state = state or TransactionState()
    poller = StatusPoller(
        state,
        TransactionsAPI(http),
        lambda: identifier,
        lambda: authenticated,
        interval=interval,
    )
    return state, poller


class TestCheckNow:
    @pytest.mark.asyncio
    async def test_success_records_accounts(self, http, backend):
        backend.poll_status = "paid"
        backend.poll_accounts = [{"id": 11, "name": "bucket-account"}]
        completions = []
        state = TransactionState(on_payment_complete=completions.append)
        _, poller = make_poller(http, state)

        assert await poller.check_now() == TransactionStatus.COMPLETED
        assert state.status == TransactionStatus.COMPLETED
        assert state.confirmed_accounts == [{"id": 11, "name": "bucket-account"}]
        assert completions[0]["status"] == "paid"
        assert backend.status_calls()[0].url.path == "/api/v1/transactions/42/status"

    @pytest.mark.asyncio
    async def test_failed(self, http, backend):
        backend.poll_status = "failed"
        state, poller = make_poller(http)
        assert await poller.check_now() == TransactionStatus.FAILED
        assert state.status == TransactionStatus.FAILED

    @pytest.mark.asyncio
    async def test_other_status_changes_nothing(self, http, backend):
        backend.poll_status = "awaiting_transfer"
        state, poller = make_poller(http)
        assert await poller.check_now() is None
        assert state.status == TransactionStatus.PENDING

    @pytest.mark.asyncio
    async def test_network_error_is_swallowed(self, http, backend):
        backend.poll_error = True
        state, poller = make_poller(http)
        assert await poller.check_now() is None
        assert state.status == TransactionStatus.PENDING
        assert not poller.in_flight

    @pytest.mark.asyncio
    async def test_skipped_without_identifier_or_auth(self, http, backend):
        _, poller = make_poller(http, identifier=None)
        assert await poller.check_now() is None
        _, poller = make_poller(http, authenticated=False)
        assert await poller.check_now() is None
        assert backend.status_calls() == []

    @pytest.mark.asyncio
    async def test_skipped_when_terminal(self, http, backend):
        state = TransactionState()
        state.transition(TransactionStatus.EXPIRED)
        _, poller = make_poller(http, state)
        assert await poller.check_now() is None
        assert backend.status_calls() == []

    @pytest.mark.asyncio
    async def test_single_flight(self, http, backend):
        backend.status_gate = asyncio.Event()
        _, poller = make_poller(http)
        first = asyncio.create_task(poller.check_now())
        await asyncio.sleep(0.01)
        assert poller.in_flight
        assert await poller.check_now() is None
        backend.status_gate.set()
        await first
        assert len(backend.status_calls()) == 1

    @pytest.mark.asyncio
    async def test_late_response_ignored_after_terminal(self, http, backend):
        backend.status_gate = asyncio.Event()
        backend.poll_status = "successful"
        state, poller = make_poller(http)
        pending = asyncio.create_task(poller.check_now())
        await asyncio.sleep(0.01)
        state.transition(TransactionStatus.EXPIRED)
        backend.status_gate.set()
        assert await pending is None
        assert state.status == TransactionStatus.EXPIRED


class TestLoop:
    @pytest.mark.asyncio
    async def test_polls_on_interval_until_settled(self, http, backend):
        state, poller = make_poller(http, interval=0.02)
        poller.start()
        await asyncio.sleep(0.09)
        assert len(backend.status_calls()) >= 2
        backend.poll_status = "completed"
        await asyncio.sleep(0.06)
        assert state.status == TransactionStatus.COMPLETED
        assert not poller.running
        settled = len(backend.status_calls())
        await asyncio.sleep(0.06)
        assert len(backend.status_calls()) == settled

    @pytest.mark.asyncio
    async def test_not_started_without_identifier(self, http):
        _, poller = make_poller(http, identifier=None)
        poller.start()
        assert not poller.running

    @pytest.mark.asyncio
    async def test_close(self, http, backend):
        _, poller = make_poller(http, interval=0.02)
        poller.start()
        await poller.close()
        assert not poller.running
        await asyncio.sleep(0.05)
        assert backend.status_calls() == []
