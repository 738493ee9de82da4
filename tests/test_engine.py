"""End-to-end tests for MessengerSyncEngine with in-memory collaborators."""

from __future__ import annotations

import asyncio
from typing import Any

from conftest import (
    ALICE,
    BOB,
    CAROL,
    DummyContract,
    DummyWallet,
    new_message_event,
    raw_message,
)
from messenger_sync.config import MessengerConfig
from messenger_sync.connections import ConnectionHandle
from messenger_sync.engine import MessengerSyncEngine
from messenger_sync.exceptions import ConnectionUnavailable
from messenger_sync.subscription import SubscriptionState
from messenger_sync.types import SendMessageRequest

POLL = 0.01


class Ledger:
    """Per-identity records plus a journal of every contract call."""

    def __init__(self, records: dict[str, list[Any]] | None = None) -> None:
        self.records = records or {}
        self.journal: list[str] = []
        self.contracts: list[DummyContract] = []
        self.fetch_error = False
        self.holds: dict[str, asyncio.Event] = {}

    def bind(self, handle: ConnectionHandle) -> Any:
        contract = DummyContract(
            handle,
            records=self.records.get(handle.account.lower(), []),
            journal=self.journal,
            fetch_error=self.fetch_error,
            hold=self.holds.get(handle.account.lower()),
        )
        self.contracts.append(contract)
        return contract


def _engine(ledger: Ledger, wallet: Any = None) -> MessengerSyncEngine:
    return MessengerSyncEngine(
        MessengerConfig(event_poll_interval=POLL),
        wallet,
        binder=ledger.bind,
    )


def test_undefined_identity_has_no_handle() -> None:
    ledger = Ledger()
    engine = _engine(ledger, DummyWallet())

    state = asyncio.run(engine.configure(None))

    assert state.connected is False
    assert state.messages == ()
    assert state.processing is False
    assert ledger.contracts == []
    assert engine.subscription_state is SubscriptionState.UNATTACHED


def test_end_to_end_backfill_then_live_event() -> None:
    history = [
        raw_message(text="first", timestamp=1_700_000_000),
        raw_message(text="second", timestamp=1_700_000_060),
    ]
    ledger = Ledger({ALICE.lower(): history})
    engine = _engine(ledger, DummyWallet(ALICE))

    async def scenario() -> tuple[Any, Any]:
        backfilled = await engine.configure(ALICE.lower())
        assert engine.subscription_state is SubscriptionState.ATTACHED

        live_filter = ledger.contracts[-1].filters[-1]
        live_filter.pending.append(new_message_event(receiver=ALICE.lower(), text="live"))
        live_filter.pending.append(new_message_event(receiver=CAROL, text="other", log_index=1))
        await asyncio.sleep(POLL * 10)

        current = engine.state
        await engine.shutdown()
        return backfilled, current

    backfilled, current = asyncio.run(scenario())

    assert backfilled.connected is True
    assert [m.text for m in backfilled.messages] == ["first", "second"]
    assert backfilled.messages[0].timestamp_ms == 1_700_000_000_000
    assert [m.text for m in current.messages] == ["first", "second", "live"]
    assert ledger.journal == ["fetch:1", "attach:1", "detach:1"]


def test_identity_change_rebinds_and_tears_down_first() -> None:
    ledger = Ledger(
        {
            ALICE.lower(): [raw_message(receiver=ALICE, text="for alice")],
            BOB.lower(): [raw_message(sender=ALICE, receiver=BOB, text="for bob")],
        }
    )
    wallet = DummyWallet(ALICE)
    engine = _engine(ledger, wallet)

    async def scenario() -> Any:
        await engine.configure(ALICE)
        wallet.address = BOB
        state = await engine.configure(BOB)
        await engine.shutdown()
        return state

    state = asyncio.run(scenario())

    assert [m.text for m in state.messages] == ["for bob"]
    assert state.identity == BOB
    assert ledger.journal == [
        "fetch:1",
        "attach:1",
        "detach:1",
        "fetch:2",
        "attach:2",
        "detach:2",
    ]


def test_same_identity_with_different_case_is_noop() -> None:
    ledger = Ledger({ALICE.lower(): [raw_message()]})
    wallet = DummyWallet(ALICE)
    engine = _engine(ledger, wallet)

    async def scenario() -> None:
        await engine.configure(ALICE)
        await engine.configure(ALICE.upper().replace("0X", "0x"))
        await engine.shutdown()

    asyncio.run(scenario())

    assert wallet.signer_requests == 1
    assert len(ledger.contracts) == 1


def test_wallet_change_rebinds() -> None:
    ledger = Ledger({ALICE.lower(): [raw_message()]})
    engine = _engine(ledger, DummyWallet(ALICE))

    async def scenario() -> Any:
        await engine.configure(ALICE)
        state = await engine.configure(ALICE, DummyWallet(ALICE))
        await engine.shutdown()
        return state

    state = asyncio.run(scenario())

    assert len(ledger.contracts) == 2
    assert len(state.messages) == 1


def test_missing_wallet_is_retryable() -> None:
    ledger = Ledger({ALICE.lower(): [raw_message()]})
    engine = _engine(ledger)

    async def scenario() -> tuple[Any, Any]:
        without = await engine.configure(ALICE)
        with_wallet = await engine.configure(ALICE, DummyWallet(ALICE))
        await engine.shutdown()
        return without, with_wallet

    without, with_wallet = asyncio.run(scenario())

    assert without.connected is False
    assert with_wallet.connected is True
    assert len(with_wallet.messages) == 1


def test_offline_node_retries_on_next_configure() -> None:
    ledger = Ledger()
    wallet = DummyWallet(ALICE, online=False)
    engine = _engine(ledger, wallet)

    async def scenario() -> tuple[Any, Any]:
        offline = await engine.configure(ALICE)
        wallet.online = True
        online = await engine.configure(ALICE)
        await engine.shutdown()
        return offline, online

    offline, online = asyncio.run(scenario())

    assert offline.connected is False
    assert online.connected is True


def test_fetch_failure_keeps_cache_and_still_subscribes() -> None:
    ledger = Ledger()
    ledger.fetch_error = True
    engine = _engine(ledger, DummyWallet(ALICE))

    async def scenario() -> Any:
        state = await engine.configure(ALICE)
        assert engine.subscription_state is SubscriptionState.ATTACHED
        await engine.shutdown()
        return state

    state = asyncio.run(scenario())

    assert state.connected is True
    assert state.messages == ()


def test_refresh_replaces_with_latest_history() -> None:
    ledger = Ledger({ALICE.lower(): [raw_message(text="old")]})
    engine = _engine(ledger, DummyWallet(ALICE))

    async def scenario() -> Any:
        await engine.configure(ALICE)
        ledger.contracts[-1].records.append(raw_message(text="new"))
        assert await engine.refresh() is True
        await engine.shutdown()
        return engine.messages

    messages = asyncio.run(scenario())

    assert [m.text for m in messages] == ["old", "new"]


def test_refresh_without_connection() -> None:
    engine = _engine(Ledger())
    assert asyncio.run(engine.refresh()) is False


def test_send_message_through_engine() -> None:
    ledger = Ledger()
    engine = _engine(ledger, DummyWallet(ALICE))

    async def scenario() -> Any:
        await engine.configure(ALICE)
        response = await engine.send_message(text="gm", receiver=BOB, token_in_ether="0.1")
        await engine.shutdown()
        return response

    response = asyncio.run(scenario())

    assert response.success is True
    assert ledger.contracts[-1].submissions == [("gm", BOB, 10**17, 300_000)]
    assert engine.processing is False


def test_send_message_accepts_request_object() -> None:
    ledger = Ledger()
    engine = _engine(ledger, DummyWallet(ALICE))

    async def scenario() -> Any:
        await engine.configure(ALICE)
        request = SendMessageRequest(text="gm", receiver=BOB, token_in_ether="abc")
        response = await engine.send_message(request)
        await engine.shutdown()
        return response

    response = asyncio.run(scenario())

    assert response.success is False
    assert response.error_type == "AmountFormatError"
    assert ledger.contracts[-1].submissions == []


def test_send_message_without_connection_does_not_raise() -> None:
    engine = _engine(Ledger())

    response = asyncio.run(engine.send_message(text="gm", receiver=BOB, token_in_ether="1"))

    assert response.success is False
    assert response.error_type == "ConnectionUnavailable"


def test_context_manager_shuts_down() -> None:
    ledger = Ledger()

    async def scenario() -> MessengerSyncEngine:
        async with _engine(ledger, DummyWallet(ALICE)) as engine:
            await engine.configure(ALICE)
            assert engine.subscription_state is SubscriptionState.ATTACHED
        return engine

    engine = asyncio.run(scenario())

    assert engine.subscription_state is SubscriptionState.UNATTACHED
    assert engine.state.connected is False
    assert ledger.journal[-1] == "detach:1"


def test_state_is_a_snapshot() -> None:
    ledger = Ledger({ALICE.lower(): [raw_message(text="old")]})
    engine = _engine(ledger, DummyWallet(ALICE))

    async def scenario() -> Any:
        state = await engine.configure(ALICE)
        ledger.contracts[-1].records.append(raw_message(text="new"))
        await engine.refresh()
        await engine.shutdown()
        return state

    state = asyncio.run(scenario())

    assert [m.text for m in state.messages] == ["old"]
    assert [m.text for m in engine.messages] == ["old", "new"]


def test_superseded_connection_is_closed() -> None:
    ledger = Ledger({ALICE.lower(): [raw_message()]})
    slow = DummyWallet(ALICE, signer_delay=0.05)
    fast = DummyWallet(ALICE)
    engine = _engine(ledger, slow)

    async def scenario() -> Any:
        first = asyncio.create_task(engine.configure(ALICE))
        await asyncio.sleep(0)
        state = await engine.configure(ALICE, fast)
        await first
        current = engine.state
        await engine.shutdown()
        return state, current

    state, current = asyncio.run(scenario())

    assert state.connected is True
    assert current.connected is True
    assert len(ledger.contracts) == 1
    assert slow.sessions_closed == slow.sessions_opened == 1
    assert fast.sessions_closed == 1
    assert ledger.journal == ["fetch:2", "attach:2", "detach:2"]


def test_bind_failure_closes_connection() -> None:
    wallet = DummyWallet(ALICE)

    def refuse(handle: ConnectionHandle) -> Any:
        raise ConnectionUnavailable("contract code missing")

    engine = MessengerSyncEngine(
        MessengerConfig(event_poll_interval=POLL), wallet, binder=refuse
    )

    state = asyncio.run(engine.configure(ALICE))

    assert state.connected is False
    assert wallet.sessions_closed == wallet.sessions_opened == 1


def test_identity_change_during_backfill_keeps_only_new_records() -> None:
    ledger = Ledger(
        {
            ALICE.lower(): [raw_message(receiver=ALICE, text="for alice")],
            BOB.lower(): [raw_message(sender=ALICE, receiver=BOB, text="for bob")],
        }
    )
    wallet = DummyWallet(ALICE)
    engine = _engine(ledger, wallet)

    async def scenario() -> tuple[Any, Any]:
        hold = asyncio.Event()
        ledger.holds[ALICE.lower()] = hold
        first = asyncio.create_task(engine.configure(ALICE))
        while not ledger.journal:
            await asyncio.sleep(0)

        wallet.address = BOB
        switched = await engine.configure(BOB)
        hold.set()
        await first
        final = engine.state
        await engine.shutdown()
        return switched, final

    switched, final = asyncio.run(scenario())

    assert [m.text for m in switched.messages] == ["for bob"]
    assert [m.text for m in final.messages] == ["for bob"]
    assert final.identity == BOB
    assert ledger.journal == ["fetch:1", "fetch:2", "attach:2", "detach:2"]
