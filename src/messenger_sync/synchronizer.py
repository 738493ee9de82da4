"""Historical backfill of messages addressed to the current identity."""

from __future__ import annotations

import logging
from collections.abc import Callable

from .cache import MessageCache
from .contract import MessengerContract
from .exceptions import FetchFailure, ValidationError
from .types import Message

logger = logging.getLogger(__name__)


class MessageSynchronizer:
    """Seed the cache from ``getOwnMessages()``.

    The contract already filters by caller, so backfilled records are trusted
    to belong to the bound identity. A successful backfill replaces the cache
    contents in the order the contract returned them.
    """

    def __init__(self, cache: MessageCache, current_generation: Callable[[], int]) -> None:
        self._cache = cache
        self._current_generation = current_generation

    async def backfill(self, contract: MessengerContract) -> bool:
        """Fetch and store own messages; return ``True`` if the cache was written."""

        generation = contract.handle.generation
        try:
            raw_messages = await contract.fetch_own_messages()
            messages = [Message.from_raw(raw) for raw in raw_messages]
        except FetchFailure as exc:
            logger.warning("Backfill failed for %s: %s", contract.handle.account, exc.message)
            return False
        except ValidationError as exc:
            logger.warning(
                "Backfill returned an invalid record for %s: %s (field=%s)",
                contract.handle.account,
                exc.message,
                exc.field,
            )
            return False
        except Exception:
            logger.exception("Unexpected backfill failure for %s", contract.handle.account)
            return False

        if generation != self._current_generation():
            logger.info(
                "Discarding backfill issued under stale generation %s (current %s)",
                generation,
                self._current_generation(),
            )
            return False

        self._cache.replace(messages)
        logger.info("Backfilled %d messages for %s", len(messages), contract.handle.account)
        return True
