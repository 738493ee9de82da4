"""Live NewMessage subscription with addressee filtering."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

from hexbytes import HexBytes

from .cache import MessageCache
from .contract import MessengerContract
from .exceptions import SubscriptionError, ValidationError
from .types import Message, RawMessage
from .utils import same_address

logger = logging.getLogger(__name__)

SEEN_LOG_LIMIT = 4096


class SubscriptionState(Enum):
    """Listener state relative to the current connection handle."""

    UNATTACHED = "unattached"
    ATTACHED = "attached"


class EventSubscription:
    """Poll the contract's NewMessage filter and append matching records.

    At most one listener exists at a time. Attaching to a new handle always
    tears the previous listener down first, so two handles never deliver into
    the cache at once.
    """

    def __init__(
        self,
        cache: MessageCache,
        *,
        identity: Callable[[], str | None],
        current_generation: Callable[[], int],
        poll_interval: float,
        seen_limit: int = SEEN_LOG_LIMIT,
    ) -> None:
        self._cache = cache
        self._identity = identity
        self._current_generation = current_generation
        self._poll_interval = poll_interval
        self._state = SubscriptionState.UNATTACHED
        self._contract: MessengerContract | None = None
        self._filter: Any = None
        self._task: asyncio.Task[None] | None = None
        self._seen: set[tuple[bytes, int]] = set()
        self._seen_order: deque[tuple[bytes, int]] = deque()
        self._seen_limit = seen_limit

    @property
    def state(self) -> SubscriptionState:
        return self._state

    @property
    def attached_generation(self) -> int | None:
        if self._contract is None:
            return None
        return self._contract.handle.generation

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def attach(self, contract: MessengerContract | None) -> bool:
        """Register the listener on ``contract``; return ``True`` when attached."""

        if contract is None:
            return False

        if (
            self._state is SubscriptionState.ATTACHED
            and self._contract is not None
            and self._contract.handle is contract.handle
        ):
            return True

        await self.detach()

        try:
            log_filter = await contract.create_new_message_filter()
        except SubscriptionError as exc:
            logger.warning("Could not attach NewMessage listener: %s", exc.message)
            return False

        if contract.handle.generation != self._current_generation():
            logger.info("Connection replaced while attaching; removing NewMessage filter")
            try:
                await contract.uninstall_filter(log_filter)
            except SubscriptionError as exc:
                logger.warning("Could not remove NewMessage listener: %s", exc.message)
            return False

        self._contract = contract
        self._filter = log_filter
        self._seen = set()
        self._seen_order = deque()
        self._state = SubscriptionState.ATTACHED
        self._task = asyncio.create_task(
            self._poll(contract, log_filter),
            name=f"messenger-newmessage-{contract.handle.generation}",
        )
        logger.info(
            "Listening for NewMessage on %s (generation %s)",
            contract.address,
            contract.handle.generation,
        )
        return True

    async def detach(self) -> None:
        """Deregister the current listener, if any."""

        if self._state is SubscriptionState.UNATTACHED:
            return

        contract, log_filter, task = self._contract, self._filter, self._task
        self._state = SubscriptionState.UNATTACHED
        self._contract = None
        self._filter = None
        self._task = None

        if task is not None:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        if contract is not None and log_filter is not None:
            try:
                await contract.uninstall_filter(log_filter)
            except SubscriptionError as exc:
                logger.warning("Could not remove NewMessage listener: %s", exc.message)

        logger.info("Stopped NewMessage listener")

    # ------------------------------------------------------------------
    # Event handling
    # ------------------------------------------------------------------
    def on_event(self, event: Mapping[str, Any], generation: int) -> bool:
        """Handle one decoded NewMessage log; return ``True`` if it was appended."""

        if generation != self._current_generation():
            logger.debug("Dropping NewMessage from stale generation %s", generation)
            return False

        try:
            raw = RawMessage.from_event(event)
            message = Message.from_raw(raw)
        except ValidationError as exc:
            logger.warning(
                "Ignoring malformed NewMessage event: %s (field=%s)", exc.message, exc.field
            )
            return False

        if not same_address(raw.receiver, self._identity()):
            return False

        key = _log_key(event)
        if key is not None:
            if key in self._seen:
                logger.debug("Ignoring redelivered NewMessage log %s", key)
                return False
            self._remember(key)

        self._cache.append(message)
        logger.info("New message from %s (deposit %s wei)", raw.sender, raw.deposit_in_wei)
        return True

    def _remember(self, key: tuple[bytes, int]) -> None:
        # Oldest keys are forgotten once the window is full
        if len(self._seen_order) >= self._seen_limit:
            self._seen.discard(self._seen_order.popleft())
        self._seen.add(key)
        self._seen_order.append(key)

    async def _poll(self, contract: MessengerContract, log_filter: Any) -> None:
        generation = contract.handle.generation
        while True:
            try:
                entries = await log_filter.get_new_entries()
            except Exception as exc:
                logger.warning("Polling NewMessage filter failed: %s", exc)
                entries = []

            for entry in entries:
                try:
                    self.on_event(entry, generation)
                except Exception:
                    logger.exception("Failed to handle NewMessage log")

            await asyncio.sleep(self._poll_interval)


def _log_key(event: Mapping[str, Any]) -> tuple[bytes, int] | None:
    tx_hash = event.get("transactionHash")
    log_index = event.get("logIndex")
    if tx_hash is None or log_index is None:
        return None
    return bytes(HexBytes(tx_hash)), int(log_index)
