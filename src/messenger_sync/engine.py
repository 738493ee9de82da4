"""Messenger synchronization engine: the single public entry point."""

from __future__ import annotations

import logging
from collections.abc import Callable
from types import TracebackType
from typing import Any

from .base import WalletProvider
from .cache import MessageCache
from .config import MessengerConfig
from .connections import ConnectionHandle, ConnectionManager
from .contract import MessengerContract
from .exceptions import MessengerSyncError
from .subscription import EventSubscription, SubscriptionState
from .synchronizer import MessageSynchronizer
from .transactions import TransactionDispatcher
from .types import EngineState, Message, SendMessageRequest, SendResponse
from .utils import same_address

logger = logging.getLogger(__name__)

ContractBinder = Callable[[ConnectionHandle], MessengerContract]

_UNCHANGED: Any = object()


class MessengerSyncEngine:
    """Keep a local view of own Messenger records and post new ones.

    ``configure`` is called whenever the selected identity or wallet changes.
    It rebuilds the connection, re-binds the contract, backfills history and
    moves the live listener to the new handle, in that order. Consumers read
    :attr:`state` snapshots and call :meth:`send_message`; neither raises.
    """

    def __init__(
        self,
        config: MessengerConfig | None = None,
        wallet: WalletProvider | None = None,
        *,
        connection_manager: ConnectionManager | None = None,
        binder: ContractBinder | None = None,
    ) -> None:
        self._config = config or MessengerConfig()
        self._wallet = wallet
        self._identity: str | None = None
        self._handle: ConnectionHandle | None = None
        self._contract: MessengerContract | None = None

        self._connections = connection_manager or ConnectionManager()
        self._binder = binder or self._bind_contract
        self._cache = MessageCache()
        self._synchronizer = MessageSynchronizer(self._cache, self._current_generation)
        self._subscription = EventSubscription(
            self._cache,
            identity=lambda: self._identity,
            current_generation=self._current_generation,
            poll_interval=self._config.event_poll_interval,
        )
        self._dispatcher = TransactionDispatcher(gas_limit=self._config.gas_limit)

    # ------------------------------------------------------------------
    # Read-only view
    # ------------------------------------------------------------------
    @property
    def state(self) -> EngineState:
        return EngineState(
            processing=self._dispatcher.processing,
            messages=self._cache.snapshot(),
            identity=self._identity,
            connected=self._contract is not None,
        )

    @property
    def processing(self) -> bool:
        return self._dispatcher.processing

    @property
    def messages(self) -> tuple[Message, ...]:
        return self._cache.snapshot()

    @property
    def subscription_state(self) -> SubscriptionState:
        return self._subscription.state

    @property
    def config(self) -> MessengerConfig:
        return self._config

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def configure(
        self,
        identity: str | None,
        wallet: WalletProvider | None = _UNCHANGED,
    ) -> EngineState:
        """Re-evaluate the connection for ``identity`` and optionally a new wallet."""

        new_wallet = self._wallet if wallet is _UNCHANGED else wallet
        identity_changed = not _same_identity(identity, self._identity)
        wallet_changed = new_wallet is not self._wallet

        if not identity_changed and not wallet_changed:
            if self._handle is not None or not identity:
                return self.state

        await self._subscription.detach()
        generation = self._connections.next_generation()

        previous = self._handle
        self._handle = None
        self._contract = None
        await self._connections.disconnect(previous)

        self._wallet = new_wallet
        self._identity = identity
        if identity_changed:
            self._cache.clear()

        handle = await self._connections.connect(new_wallet, identity, generation=generation)
        if handle is None:
            return self.state
        if self._is_stale(generation):
            logger.info("Connection for generation %s was superseded; closing it", generation)
            await self._connections.disconnect(handle)
            return self.state

        try:
            contract = self._binder(handle)
        except MessengerSyncError as exc:
            logger.warning("Could not bind Messenger contract: %s", exc.message)
            await self._connections.disconnect(handle)
            return self.state

        self._handle = handle
        self._contract = contract

        await self._synchronizer.backfill(contract)
        if self._is_stale(generation):
            return self.state

        await self._subscription.attach(contract)
        return self.state

    async def refresh(self) -> bool:
        """Re-run the historical backfill against the current handle."""

        if self._contract is None:
            return False
        return await self._synchronizer.backfill(self._contract)

    async def shutdown(self) -> None:
        """Detach the listener and release the connection."""

        await self._subscription.detach()
        self._connections.next_generation()
        previous = self._handle
        self._handle = None
        self._contract = None
        await self._connections.disconnect(previous)
        logger.info("Messenger engine shut down")

    async def __aenter__(self) -> MessengerSyncEngine:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.shutdown()

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------
    async def send_message(
        self,
        request: SendMessageRequest | None = None,
        *,
        text: str | None = None,
        receiver: str | None = None,
        token_in_ether: str | None = None,
    ) -> SendResponse:
        """Post a message with a deposit given in ether."""

        if request is None:
            request = SendMessageRequest(
                text=text or "",
                receiver=receiver or "",
                token_in_ether=token_in_ether if token_in_ether is not None else "",
            )

        contract = self._contract
        response = await self._dispatcher.send(
            contract, request.text, request.receiver, request.token_in_ether
        )

        if contract is not None and self._is_stale(contract.handle.generation):
            logger.info(
                "Transaction %s settled under a replaced connection", response.transaction_hash
            )
        return response

    # ------------------------------------------------------------------
    # Internal wiring
    # ------------------------------------------------------------------
    def _current_generation(self) -> int:
        return self._connections.generation

    def _is_stale(self, generation: int) -> bool:
        return generation != self._connections.generation

    def _bind_contract(self, handle: ConnectionHandle) -> MessengerContract:
        return MessengerContract.bind(
            handle,
            self._config.contract_address,
            receipt_timeout=self._config.receipt_timeout,
        )


def _same_identity(left: str | None, right: str | None) -> bool:
    if left is None or right is None:
        return left is right
    return same_address(left, right)
