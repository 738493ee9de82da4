"""Binding between a connection handle and the Messenger contract."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from eth_typing import HexStr
from hexbytes import HexBytes
from web3.contract import AsyncContract
from web3.types import ChecksumAddress

from .abi import Messenger_abi
from .connections import ConnectionHandle
from .constants import ContractEvent, ContractFunction
from .exceptions import (
    ConnectionUnavailable,
    FetchFailure,
    SubmissionFailure,
    SubscriptionError,
    ValidationError,
)
from .types import RawMessage
from .utils import to_checksum

logger = logging.getLogger(__name__)


class PendingTransaction:
    """A post() accepted by the node but not yet settled."""

    def __init__(self, handle: ConnectionHandle, tx_hash: HexBytes, *, timeout: float) -> None:
        self._handle = handle
        self._tx_hash = HexBytes(tx_hash)
        self._timeout = timeout

    @property
    def hash(self) -> HexStr:
        return HexStr(self._tx_hash.to_0x_hex())

    @property
    def generation(self) -> int:
        return self._handle.generation

    async def wait(self) -> Any:
        """Wait for the receipt; raise :class:`SubmissionFailure` if it reverted."""

        try:
            receipt = await self._handle.web3.eth.wait_for_transaction_receipt(
                self._tx_hash, timeout=self._timeout
            )
        except Exception as exc:
            raise SubmissionFailure(
                "Failed waiting for transaction receipt",
                transaction_hash=self.hash,
                details={"error": str(exc)},
            ) from exc

        if receipt.get("status", 0) != 1:
            raise SubmissionFailure(
                "Transaction reverted",
                transaction_hash=self.hash,
                details={"block_number": receipt.get("blockNumber")},
            )
        return receipt


class MessengerContract:
    """Read/write handle on the Messenger contract for one connection."""

    def __init__(
        self,
        handle: ConnectionHandle,
        contract: AsyncContract,
        *,
        receipt_timeout: float,
    ) -> None:
        self._handle = handle
        self._contract = contract
        self._receipt_timeout = receipt_timeout

    @classmethod
    def bind(
        cls,
        handle: ConnectionHandle | None,
        address: ChecksumAddress,
        abi: Sequence[dict[str, Any]] = Messenger_abi,
        *,
        receipt_timeout: float,
    ) -> MessengerContract:
        if handle is None:
            raise ConnectionUnavailable("Cannot bind Messenger contract without a connection")

        contract = handle.web3.eth.contract(address=address, abi=abi)
        return cls(handle, contract, receipt_timeout=receipt_timeout)

    @property
    def handle(self) -> ConnectionHandle:
        return self._handle

    @property
    def address(self) -> ChecksumAddress:
        return self._contract.address

    # ------------------------------------------------------------------
    # Remote operations
    # ------------------------------------------------------------------
    async def fetch_own_messages(self) -> list[RawMessage]:
        """Return every record the contract holds for the bound account."""

        function = getattr(self._contract.functions, ContractFunction.GET_OWN_MESSAGES.value)
        try:
            result = await function().call({"from": self._handle.account})
        except Exception as exc:
            raise FetchFailure(
                "Failed to read own messages",
                details={"account": self._handle.account, "error": str(exc)},
            ) from exc

        try:
            return [RawMessage.from_struct(item) for item in result]
        except ValidationError as exc:
            raise FetchFailure(
                "Contract returned a malformed message",
                details={"error": exc.message, "field": exc.field},
            ) from exc

    async def submit(
        self,
        text: str,
        receiver: str,
        deposit_in_wei: int,
        gas_limit: int,
    ) -> PendingTransaction:
        """Send ``post(text, receiver)`` carrying ``deposit_in_wei``."""

        try:
            receiver_address = to_checksum(receiver, field="receiver")
        except ValidationError as exc:
            raise SubmissionFailure(exc.message, details={"receiver": receiver}) from exc

        function = getattr(self._contract.functions, ContractFunction.POST.value)
        try:
            tx_hash = await function(text, receiver_address).transact(
                {
                    "from": self._handle.account,
                    "value": deposit_in_wei,
                    "gas": gas_limit,
                }
            )
        except Exception as exc:
            raise SubmissionFailure(
                "Failed to submit post transaction",
                details={
                    "receiver": receiver_address,
                    "value": deposit_in_wei,
                    "error": str(exc),
                },
            ) from exc

        return PendingTransaction(self._handle, tx_hash, timeout=self._receipt_timeout)

    # ------------------------------------------------------------------
    # Event feed
    # ------------------------------------------------------------------
    async def create_new_message_filter(self) -> Any:
        event = getattr(self._contract.events, ContractEvent.NEW_MESSAGE.value)
        try:
            return await event.create_filter(from_block="latest")
        except Exception as exc:
            raise SubscriptionError(
                "Failed to register NewMessage filter", details={"error": str(exc)}
            ) from exc

    async def uninstall_filter(self, log_filter: Any) -> None:
        try:
            await self._handle.web3.eth.uninstall_filter(log_filter.filter_id)
        except Exception as exc:
            raise SubscriptionError(
                "Failed to remove NewMessage filter",
                details={"filter_id": getattr(log_filter, "filter_id", None), "error": str(exc)},
            ) from exc
