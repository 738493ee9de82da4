"""Ordered, identity-scoped store of received messages."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from .types import Message


class MessageCache:
    """Append-only view of messages in arrival order.

    Only the engine writes to the cache; readers get immutable snapshots.
    """

    def __init__(self) -> None:
        self._messages: list[Message] = []

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self.snapshot())

    def append(self, message: Message) -> None:
        self._messages.append(message)

    def extend(self, messages: Iterable[Message]) -> None:
        self._messages.extend(messages)

    def replace(self, messages: Iterable[Message]) -> None:
        self._messages = list(messages)

    def clear(self) -> None:
        self._messages = []

    def snapshot(self) -> tuple[Message, ...]:
        return tuple(self._messages)
