from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import Any, cast

import pytest
from hexbytes import HexBytes
from web3.datastructures import AttributeDict
from web3.types import ChecksumAddress

from messenger_sync.base import WalletProvider
from messenger_sync.connections import ConnectionHandle
from messenger_sync.exceptions import FetchFailure, SubmissionFailure
from messenger_sync.types import RawMessage

ALICE = "0xAbC0000000000000000000000000000000000001"
BOB = "0xdef0000000000000000000000000000000000002"
CAROL = "0x00000000000000000000000000000000000000c3"
CONTRACT = "0x1A39EAAfd55D97b7e499ab5f7f8055a40DcF4183"


def make_handle(generation: int = 1, account: str = ALICE) -> ConnectionHandle:
    web3 = SimpleNamespace(eth=SimpleNamespace(default_account=None), provider=SimpleNamespace())
    return ConnectionHandle(
        web3=cast(Any, web3),
        account=cast(ChecksumAddress, account),
        identity=account,
        generation=generation,
        endpoint="http://node",
    )


def raw_message(
    *,
    sender: str = BOB,
    receiver: str = ALICE,
    deposit: int = 10**17,
    timestamp: int = 1_700_000_000,
    text: str = "hello",
    is_pending: bool = True,
) -> RawMessage:
    return RawMessage(sender, receiver, deposit, timestamp, text, is_pending)


def new_message_event(
    *,
    receiver: str = ALICE,
    sender: str = BOB,
    text: str = "hi",
    timestamp: int = 1_700_000_100,
    deposit: int = 1,
    tx_hash: bytes = b"\x01" * 32,
    log_index: int = 0,
) -> AttributeDict:
    return AttributeDict(
        {
            "event": "NewMessage",
            "transactionHash": HexBytes(tx_hash),
            "logIndex": log_index,
            "args": AttributeDict(
                {
                    "sender": sender,
                    "receiver": receiver,
                    "depositInWei": deposit,
                    "timestamp": timestamp,
                    "text": text,
                    "isPending": True,
                }
            ),
        }
    )


class DummyFilter:
    def __init__(self, filter_id: str) -> None:
        self.filter_id = filter_id
        self.pending: list[Any] = []

    async def get_new_entries(self) -> list[Any]:
        entries, self.pending = self.pending, []
        return entries


class DummyPending:
    def __init__(
        self,
        tx_hash: str,
        *,
        fail: bool = False,
        release: asyncio.Event | None = None,
    ) -> None:
        self.hash = tx_hash
        self._fail = fail
        self._release = release

    async def wait(self) -> dict[str, Any]:
        if self._release is not None:
            await self._release.wait()
        if self._fail:
            raise SubmissionFailure("Transaction reverted", transaction_hash=self.hash)
        return {"status": 1, "blockNumber": 42}


class DummyContract:
    """Stand-in for MessengerContract recording every remote call."""

    def __init__(
        self,
        handle: ConnectionHandle,
        *,
        records: list[RawMessage] | None = None,
        journal: list[str] | None = None,
        fetch_error: bool = False,
        fail_settlement: bool = False,
        release: asyncio.Event | None = None,
        hold: asyncio.Event | None = None,
    ) -> None:
        self.handle = handle
        self.address = CONTRACT
        self.records = list(records or [])
        self.journal = journal if journal is not None else []
        self.fetch_error = fetch_error
        self.fail_settlement = fail_settlement
        self.release = release
        self.hold = hold
        self.filters: list[DummyFilter] = []
        self.submissions: list[tuple[str, str, int, int]] = []

    async def fetch_own_messages(self) -> list[RawMessage]:
        self.journal.append(f"fetch:{self.handle.generation}")
        if self.hold is not None:
            await self.hold.wait()
        if self.fetch_error:
            raise FetchFailure("node unavailable")
        return list(self.records)

    async def submit(
        self, text: str, receiver: str, deposit_in_wei: int, gas_limit: int
    ) -> DummyPending:
        self.submissions.append((text, receiver, deposit_in_wei, gas_limit))
        return DummyPending(
            "0x" + "ab" * 32, fail=self.fail_settlement, release=self.release
        )

    async def create_new_message_filter(self) -> DummyFilter:
        self.journal.append(f"attach:{self.handle.generation}")
        log_filter = DummyFilter(f"filter-{self.handle.generation}")
        self.filters.append(log_filter)
        return log_filter

    async def uninstall_filter(self, log_filter: DummyFilter) -> None:
        self.journal.append(f"detach:{self.handle.generation}")


class DummyWallet(WalletProvider):
    def __init__(
        self, address: str = ALICE, *, online: bool = True, signer_delay: float = 0.0
    ) -> None:
        self.address = address
        self.online = online
        self.signer_delay = signer_delay
        self.signer_requests = 0
        self.sessions_opened = 0
        self.sessions_closed = 0

    @property
    def endpoint(self) -> str:
        return "http://node"

    def build_web3(self) -> Any:
        async def is_connected() -> bool:
            return self.online

        async def disconnect() -> None:
            self.sessions_closed += 1

        self.sessions_opened += 1
        return SimpleNamespace(
            is_connected=is_connected,
            eth=SimpleNamespace(default_account=None),
            provider=SimpleNamespace(disconnect=disconnect),
        )

    async def request_signer(self, web3: Any) -> Any:
        self.signer_requests += 1
        if self.signer_delay:
            await asyncio.sleep(self.signer_delay)
        return self.address


@pytest.fixture
def journal() -> list[str]:
    return []
