"""Type definitions and data models for the Messenger synchronization engine."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, NamedTuple

from .exceptions import ValidationError
from .utils import normalise_timestamp, to_epoch_millis

Address = str  # Ethereum address, any casing
Wei = int  # Smallest native unit

_FIELDS = ("sender", "receiver", "depositInWei", "timestamp", "text", "isPending")


class RawMessage(NamedTuple):
    """A record exactly as the Messenger contract reports it.

    ``timestamp`` is whole seconds since the epoch. Instances are only built at
    the contract boundary and converted to :class:`Message` straight away.
    """

    sender: Address
    receiver: Address
    deposit_in_wei: Wei
    timestamp: int
    text: str
    is_pending: bool

    @classmethod
    def from_struct(cls, value: Sequence[Any] | Mapping[str, Any]) -> RawMessage:
        """Build from one element of ``getOwnMessages()``."""

        if isinstance(value, Mapping):
            return cls.from_args(value)

        if isinstance(value, str | bytes) or not isinstance(value, Sequence):
            raise ValidationError("Message struct must be a tuple", field="message", value=value)
        if len(value) != len(_FIELDS):
            raise ValidationError(
                f"Message struct must have {len(_FIELDS)} fields",
                field="message",
                value=value,
            )

        return cls.from_args(dict(zip(_FIELDS, value)))

    @classmethod
    def from_event(cls, event: Mapping[str, Any]) -> RawMessage:
        """Build from a decoded ``NewMessage`` log entry."""

        args = event.get("args") if isinstance(event, Mapping) else None
        if not isinstance(args, Mapping):
            raise ValidationError("Event payload has no arguments", field="args", value=event)
        return cls.from_args(args)

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> RawMessage:
        missing = [name for name in _FIELDS if name not in args]
        if missing:
            raise ValidationError(
                "Message payload is missing fields",
                field="message",
                value=dict(args),
                details={"missing": missing},
            )

        sender = args["sender"]
        receiver = args["receiver"]
        for name, address in (("sender", sender), ("receiver", receiver)):
            if not isinstance(address, str):
                raise ValidationError("Address must be a string", field=name, value=address)

        deposit = args["depositInWei"]
        timestamp = args["timestamp"]
        for name, number in (("depositInWei", deposit), ("timestamp", timestamp)):
            if isinstance(number, bool) or not isinstance(number, int) or number < 0:
                raise ValidationError(
                    "Value must be a non-negative integer", field=name, value=number
                )

        text = args["text"]
        if not isinstance(text, str):
            raise ValidationError("Text must be a string", field="text", value=text)

        return cls(
            sender=sender,
            receiver=receiver,
            deposit_in_wei=deposit,
            timestamp=timestamp,
            text=text,
            is_pending=bool(args["isPending"]),
        )


@dataclass(frozen=True)
class Message:
    """A record addressed to the current identity."""

    sender: Address
    receiver: Address
    deposit_in_wei: Wei
    timestamp: datetime
    text: str
    is_pending: bool

    @classmethod
    def from_raw(cls, raw: RawMessage) -> Message:
        return cls(
            sender=raw.sender,
            receiver=raw.receiver,
            deposit_in_wei=raw.deposit_in_wei,
            timestamp=normalise_timestamp(raw.timestamp),
            text=raw.text,
            is_pending=raw.is_pending,
        )

    @property
    def timestamp_ms(self) -> int:
        return to_epoch_millis(self.timestamp)


@dataclass(frozen=True)
class SendMessageRequest:
    """User-facing request to post a message with an ether deposit."""

    text: str
    receiver: Address
    token_in_ether: str


@dataclass(frozen=True)
class EngineState:
    """Read-only snapshot of the engine for the presentation layer."""

    processing: bool
    messages: tuple[Message, ...]
    identity: Address | None = None
    connected: bool = False


@dataclass
class SendResponse:
    """Result of a send_message call; failures are reported, never raised."""

    success: bool
    transaction_hash: str | None = None
    error: str | None = None
    error_type: str | None = None
    amount_wei: Wei | None = None
    receiver: Address | None = None
    block_number: int | None = None
