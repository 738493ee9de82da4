"""Configuration container for the Messenger synchronization engine."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import cast

from dotenv import load_dotenv
from web3 import Web3
from web3.types import ChecksumAddress

from .constants import GAS_LIMIT, MESSENGER_CONTRACT_ADDRESS
from .exceptions import ValidationError

DEFAULT_RPC_URL = "http://127.0.0.1:8545"
DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_RECEIPT_TIMEOUT = 120.0
DEFAULT_EVENT_POLL_INTERVAL = 2.0


@dataclass(frozen=True)
class MessengerConfig:
    """Settings used to bind the engine to a node and the Messenger contract."""

    rpc_url: str = DEFAULT_RPC_URL
    contract_address: ChecksumAddress = Web3.to_checksum_address(MESSENGER_CONTRACT_ADDRESS)
    gas_limit: int = GAS_LIMIT
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT
    event_poll_interval: float = DEFAULT_EVENT_POLL_INTERVAL

    def __post_init__(self) -> None:
        try:
            checksummed = Web3.to_checksum_address(self.contract_address)
        except (TypeError, ValueError) as exc:
            raise ValidationError(
                "Invalid Messenger contract address",
                field="contract_address",
                value=self.contract_address,
                details={"error": str(exc)},
            ) from exc
        object.__setattr__(self, "contract_address", checksummed)

        if self.event_poll_interval <= 0:
            raise ValidationError(
                "Event poll interval must be positive",
                field="event_poll_interval",
                value=self.event_poll_interval,
            )

    @classmethod
    def from_env(cls) -> MessengerConfig:
        """Build a config from ``MESSENGER_*`` environment variables.

        A ``.env`` file in the working directory is loaded first. The gas limit
        is a fixed policy and is never read from the environment.
        """

        load_dotenv()

        return cls(
            rpc_url=os.getenv("MESSENGER_RPC_URL", DEFAULT_RPC_URL),
            contract_address=cast(
                ChecksumAddress,
                os.getenv("MESSENGER_CONTRACT_ADDRESS", MESSENGER_CONTRACT_ADDRESS),
            ),
            request_timeout=_env_float("MESSENGER_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
            receipt_timeout=_env_float("MESSENGER_RECEIPT_TIMEOUT", DEFAULT_RECEIPT_TIMEOUT),
            event_poll_interval=_env_float(
                "MESSENGER_EVENT_POLL_INTERVAL", DEFAULT_EVENT_POLL_INTERVAL
            ),
        )


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValidationError(
            f"{name} must be a number", field=name, value=raw, details={"error": str(exc)}
        ) from exc
