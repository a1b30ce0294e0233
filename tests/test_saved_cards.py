"""Saved card listing, selection, removal and payment."""

import pytest

from cloudpay.models.payment import SAVED_CARD
from cloudpay.models.transaction import TransactionStatus

from conftest import PAYSTACK_CARD, SAVED_CARDS, make_payload


@pytest.fixture
def payload():
    return make_payload(options=[PAYSTACK_CARD], saved_cards=SAVED_CARDS)


class TestSelection:
    @pytest.mark.asyncio
    async def test_first_card_selected_initially(self, make_engine, payload):
        engine = make_engine(payload)
        assert engine.saved_cards.identifiers() == ["AUTH_aaa", "7"]
        assert engine.saved_cards.selected == "AUTH_aaa"
        assert engine.saved_cards.get("7").last4 == "5555"

    @pytest.mark.asyncio
    async def test_select_unknown_rejected(self, make_engine, payload):
        engine = make_engine(payload)
        assert engine.saved_cards.select("7")
        assert not engine.saved_cards.select("AUTH_zzz")
        assert engine.saved_cards.selected == "7"

    @pytest.mark.asyncio
    async def test_no_cards(self, make_engine):
        engine = make_engine(make_payload(options=[PAYSTACK_CARD]))
        assert engine.saved_cards.selected is None
        assert SAVED_CARD not in engine.available_channels()


class TestRemoval:
    @pytest.mark.asyncio
    async def test_removing_selected_clears_selection(self, make_engine, backend, payload):
        engine = make_engine(payload)
        assert await engine.remove_saved_card("AUTH_aaa")
        assert backend.calls("DELETE")[0].url.path == "/api/v1/cards/AUTH_aaa"
        assert engine.saved_cards.identifiers() == ["7"]
        assert engine.saved_cards.selected is None

    @pytest.mark.asyncio
    async def test_removing_other_keeps_selection(self, make_engine, payload):
        engine = make_engine(payload)
        assert await engine.remove_saved_card("7")
        assert engine.saved_cards.identifiers() == ["AUTH_aaa"]
        assert engine.saved_cards.selected == "AUTH_aaa"

    @pytest.mark.asyncio
    async def test_failure_leaves_collection(self, make_engine, backend, payload):
        backend.delete_http_status = 500
        engine = make_engine(payload)
        assert not await engine.remove_saved_card("AUTH_aaa")
        assert engine.saved_cards.identifiers() == ["AUTH_aaa", "7"]
        assert engine.saved_cards.selected == "AUTH_aaa"

    @pytest.mark.asyncio
    async def test_removing_last_card_drops_channel(self, make_engine):
        engine = make_engine(make_payload(options=[PAYSTACK_CARD], saved_cards=SAVED_CARDS[:1]))
        engine.start()
        assert engine.select_channel(SAVED_CARD)
        assert await engine.remove_saved_card("AUTH_aaa")
        assert engine.saved_cards.items == []
        assert engine.channel == "card"
        assert engine.active_option.key == "1"


class TestRefresh:
    @pytest.mark.asyncio
    async def test_reload_and_repair_selection(self, make_engine, backend, payload):
        engine = make_engine(payload)
        backend.cards = [{"identifier": "AUTH_new", "card_type": "verve", "last4": "0001"}]
        await engine.refresh_saved_cards()
        assert engine.saved_cards.identifiers() == ["AUTH_new"]
        assert engine.saved_cards.selected == "AUTH_new"

    @pytest.mark.asyncio
    async def test_failure_keeps_list(self, make_engine, backend, payload):
        backend.cards_success = False
        engine = make_engine(payload)
        await engine.refresh_saved_cards()
        assert engine.saved_cards.identifiers() == ["AUTH_aaa", "7"]


class TestPayment:
    @pytest.mark.asyncio
    async def test_pays_with_selected_card(self, make_engine, backend, payload):
        backend.confirm_status = "success"
        completions = []
        engine = make_engine(payload, on_payment_complete=completions.append)
        engine.start()
        engine.select_channel(SAVED_CARD)

        assert await engine.pay_with_saved_card()
        request = backend.confirm_calls()[0]
        assert request.url.path == "/api/v1/transactions/TXN-42"
        assert backend.confirm_bodies() == [{"payment_gateway": "Paystack_Card", "card_identifier": "AUTH_aaa"}]
        assert completions == [{"status": "successful", "reference": "TXN-42", "channel": "saved_card"}]

    @pytest.mark.asyncio
    async def test_unconfirmed_stays_pending(self, make_engine, backend, payload):
        engine = make_engine(payload)
        assert not await engine.pay_with_saved_card()
        assert engine.status == TransactionStatus.PENDING

    @pytest.mark.asyncio
    async def test_nothing_selected(self, make_engine, backend):
        engine = make_engine(make_payload(options=[PAYSTACK_CARD]))
        assert not await engine.pay_with_saved_card()
        assert backend.confirm_calls() == []
