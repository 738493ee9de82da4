"""Transaction dispatch for posting messages with an ether deposit."""

from __future__ import annotations

import logging

from .contract import MessengerContract
from .exceptions import (
    AmountFormatError,
    ConnectionUnavailable,
    MessengerSyncError,
    SubmissionFailure,
)
from .types import SendResponse
from .utils import ether_to_wei

logger = logging.getLogger(__name__)


class TransactionDispatcher:
    """Submit ``post`` transactions and track the single in-flight one."""

    def __init__(self, *, gas_limit: int) -> None:
        self._gas_limit = gas_limit
        self._processing = False
        self._in_flight = False

    @property
    def processing(self) -> bool:
        return self._processing

    @property
    def gas_limit(self) -> int:
        return self._gas_limit

    async def send(
        self,
        contract: MessengerContract | None,
        text: str,
        receiver: str,
        token_in_ether: str,
    ) -> SendResponse:
        """Convert, submit and await settlement of one message.

        Every failure is logged and returned as an unsuccessful
        :class:`SendResponse`; nothing is raised to the caller.
        """

        try:
            amount_wei = ether_to_wei(token_in_ether)
        except AmountFormatError as exc:
            logger.warning("Rejected amount %r: %s", token_in_ether, exc.message)
            return _failure(exc, receiver=receiver)

        if contract is None:
            unavailable = ConnectionUnavailable(
                "No Messenger contract bound; connect a wallet first"
            )
            logger.warning("Cannot send message: %s", unavailable.message)
            return _failure(unavailable, receiver=receiver, amount_wei=amount_wei)

        if self._in_flight:
            busy = SubmissionFailure("Another message is still being processed")
            logger.warning("Cannot send message: %s", busy.message)
            return _failure(busy, receiver=receiver, amount_wei=amount_wei)

        logger.info("Calling post with receiver=%s value=%s wei", receiver, amount_wei)

        transaction_hash: str | None = None
        self._in_flight = True
        try:
            pending = await contract.submit(text, receiver, amount_wei, self._gas_limit)
            transaction_hash = pending.hash
            logger.info("Processing transaction %s", transaction_hash)
            self._processing = True

            receipt = await pending.wait()
            logger.info("Transaction done %s", transaction_hash)
            return SendResponse(
                success=True,
                transaction_hash=transaction_hash,
                amount_wei=amount_wei,
                receiver=receiver,
                block_number=receipt.get("blockNumber"),
            )
        except MessengerSyncError as exc:
            logger.error("Message submission failed: %s", exc.message)
            return _failure(
                exc,
                receiver=receiver,
                amount_wei=amount_wei,
                transaction_hash=getattr(exc, "transaction_hash", None) or transaction_hash,
            )
        except Exception as exc:
            logger.exception("Unexpected message submission failure")
            return _failure(
                exc, receiver=receiver, amount_wei=amount_wei, transaction_hash=transaction_hash
            )
        finally:
            self._processing = False
            self._in_flight = False


def _failure(
    exc: Exception,
    *,
    receiver: str | None = None,
    amount_wei: int | None = None,
    transaction_hash: str | None = None,
) -> SendResponse:
    message = exc.message if isinstance(exc, MessengerSyncError) else str(exc)
    return SendResponse(
        success=False,
        transaction_hash=transaction_hash,
        error=message,
        error_type=type(exc).__name__,
        amount_wei=amount_wei,
        receiver=receiver,
    )
